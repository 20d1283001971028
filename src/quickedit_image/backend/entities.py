"""
In-memory entity repository used by the reference backend.

Entities carry per-language field values. Image fields hold a single
``ImageItem`` (multi-value image fields are not supported).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4


@dataclass
class ImageFieldSettings:
    alt_field: bool = True
    alt_field_required: bool = True
    title_field: bool = False
    title_field_required: bool = False
    # "WIDTHxHEIGHT", empty for no limit.
    max_resolution: str = ""
    min_resolution: str = ""
    max_filesize: Optional[int] = None
    file_extensions: Optional[List[str]] = None
    file_directory: str = "images"


@dataclass
class FieldDefinition:
    name: str
    type: str = "image"
    settings: ImageFieldSettings = field(default_factory=ImageFieldSettings)


@dataclass
class ImageItem:
    target_id: Optional[int] = None
    alt: str = ""
    title: str = ""
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageItem":
        return cls(
            target_id=data.get("target_id"),
            alt=data.get("alt") or "",
            title=data.get("title") or "",
            width=data.get("width"),
            height=data.get("height"),
        )


@dataclass
class ContentEntity:
    """An entity whose fields can be edited in place.

    Attributes:
        entity_type: Entity type id, e.g. "node"
        id: Entity id as it appears in URLs
        fields: Field definitions keyed by field name
        translations: Field values per language code, then per field name
        is_content: False for configuration-like entities that cannot be edited
        uuid: Key under which uncommitted edits are kept in the temp store
    """

    entity_type: str
    id: str
    fields: Dict[str, FieldDefinition] = field(default_factory=dict)
    translations: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    is_content: bool = True
    uuid: str = field(default_factory=lambda: uuid4().hex)


class EntityRepository:
    def __init__(self) -> None:
        self._entities: Dict[tuple[str, str], ContentEntity] = {}
        self._lock = Lock()

    def add(self, entity: ContentEntity) -> ContentEntity:
        with self._lock:
            self._entities[(entity.entity_type, str(entity.id))] = entity
        return entity

    def get(self, entity_type: str, entity_id: str) -> Optional[ContentEntity]:
        with self._lock:
            return self._entities.get((entity_type, str(entity_id)))

    def commit(self, entity: ContentEntity, langcode: str, field_name: str, value: Any) -> None:
        with self._lock:
            entity.translations.setdefault(langcode, {})[field_name] = value
