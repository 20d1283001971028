from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EditorState(str, Enum):
    INACTIVE = "inactive"
    CANDIDATE = "candidate"
    HIGHLIGHTED = "highlighted"
    ACTIVATING = "activating"
    ACTIVE = "active"
    CHANGED = "changed"
    SAVING = "saving"
    SAVED = "saved"
    INVALID = "invalid"


class DropzoneState(str, Enum):
    UPLOAD = "upload"
    LOADING = "upload loading"
    ERROR = "error"


class FieldId(BaseModel):
    """Identifies one field instance as rendered on the page.

    The string form is ``entity_type/entity_id/field_name/langcode/view_mode``,
    which is also the tail of every backend endpoint path.
    """

    model_config = ConfigDict(frozen=True)

    entity_type: str
    entity_id: str
    field_name: str
    langcode: str
    view_mode: str

    @classmethod
    def parse(cls, value: str) -> "FieldId":
        parts = value.strip("/").split("/")
        if len(parts) != 5 or not all(parts):
            raise ValueError(f"Malformed field id: {value!r}")
        entity_type, entity_id, field_name, langcode, view_mode = parts
        return cls(
            entity_type=entity_type,
            entity_id=entity_id,
            field_name=field_name,
            langcode=langcode,
            view_mode=view_mode,
        )

    @property
    def entity_key(self) -> str:
        return f"{self.entity_type}/{self.entity_id}"

    def path(self, module: str, suffix: Optional[str] = None) -> str:
        path = f"/{module}/{self}"
        return f"{path}/{suffix}" if suffix else path

    def __str__(self) -> str:
        return f"{self.entity_type}/{self.entity_id}/{self.field_name}/{self.langcode}/{self.view_mode}"


class FieldMetadata(BaseModel):
    alt: str = ""
    title: str = ""
    alt_field: bool = False
    title_field: bool = False
    alt_field_required: bool = False
    title_field_required: bool = False

    @field_validator("alt", "title", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class UploadSuccess(BaseModel):
    fid: int
    html: str


class SaveResult(BaseModel):
    html: str


class ValidationFailure(BaseModel):
    main_error: str
    errors: List[str] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _coerce_errors(cls, value: Any) -> Any:
        # Some backends send a rendered string (or nothing) instead of a list.
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return [value]
        return value


class UISettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    padding: bool = False
    unified_toolbar: bool = Field(True, alias="unifiedToolbar")
    full_width_toolbar: bool = Field(True, alias="fullWidthToolbar")
    popup: bool = False


class SaveRequest(BaseModel):
    fid: Optional[int] = None
    alt: Optional[str] = None
    title: Optional[str] = None
    value: Optional[str] = None


@dataclass
class LocalFile:
    """A file picked or dropped by the user, held in memory until uploaded."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class DisplayModel:
    """Server-confirmed state of a region."""

    html: str


@dataclass
class EditBuffer:
    """Local edits that have not been committed yet."""

    fid: Optional[int] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def clear(self) -> None:
        self.fid = None
        self.attributes.clear()
