"""
Page-level coordinator for in-place editing.

An ``EditingSession`` owns every editable region on a page, the HTTP client
and the pipeline shared by their editors. It drives the field states from
the outside and guarantees that only one region is being edited at a time.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

import httpx
from lxml.html import HtmlElement
from omegaconf import DictConfig

from .configuration import make_runtime_config
from .dom import FIELD_ID_ATTRIBUTE
from .editors import EditorView, create_editor
from .errors import UnknownFieldError
from .events import FilePicker, no_file_picker
from .field_model import EntityModel, FieldModel
from .models import EditorState, FieldId
from .pipeline import UploadPipeline
from .toolbar import ToolbarHandle

logger = logging.getLogger(__name__)

S = EditorState

EDITING_STATES = frozenset({S.ACTIVATING, S.ACTIVE, S.CHANGED, S.SAVING, S.INVALID})


class EditingSession:
    def __init__(
        self,
        config: Optional[DictConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        file_picker: FilePicker = no_file_picker,
    ) -> None:
        self.config = config if config is not None else make_runtime_config()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.config.client.base_url,
            timeout=self.config.client.timeout,
        )
        self.pipeline = UploadPipeline(self.client, self.config)
        self.file_picker = file_picker
        self._editors: Dict[str, EditorView] = {}
        self._entities: Dict[str, EntityModel] = {}

    async def __aenter__(self) -> "EditingSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    def __iter__(self) -> Iterator[EditorView]:
        return iter(self._editors.values())

    def attach(
        self,
        element: HtmlElement,
        toolbar: ToolbarHandle,
        field_type: str = "image",
        field_id: Optional[FieldId] = None,
    ) -> EditorView:
        """Make ``element`` editable.

        The field id is read from the element's ``data-quickedit-field-id``
        attribute unless given explicitly.
        """
        if field_id is None:
            raw = element.get(FIELD_ID_ATTRIBUTE)
            if not raw:
                raise ValueError(f"Element <{element.tag}> has no {FIELD_ID_ATTRIBUTE} attribute")
            field_id = FieldId.parse(raw)

        key = str(field_id)
        if key in self._editors:
            raise ValueError(f"Field {key} is already attached")

        entity = self._entities.setdefault(field_id.entity_key, EntityModel(field_id.entity_key))
        field_model = FieldModel(field_id, field_type, entity)
        editor = create_editor(
            field_type,
            element=element,
            field_model=field_model,
            toolbar=toolbar,
            pipeline=self.pipeline,
            config=self.config,
            file_picker=self.file_picker,
        )
        self._editors[key] = editor
        logger.debug(f"Attached {type(editor).__name__} to {key}")
        return editor

    def editor(self, field_id: FieldId | str) -> EditorView:
        try:
            return self._editors[str(field_id)]
        except KeyError:
            raise UnknownFieldError(f"Field {field_id} is not attached to this session") from None

    def entity(self, entity_key: str) -> EntityModel:
        return self._entities[entity_key]

    @property
    def active_editor(self) -> Optional[EditorView]:
        for editor in self._editors.values():
            if editor.state in EDITING_STATES:
                return editor
        return None

    def start(self) -> None:
        for editor in self._editors.values():
            if editor.state == S.INACTIVE:
                editor.field_model.set_state(S.CANDIDATE)

    def highlight(self, field_id: FieldId | str) -> None:
        editor = self.editor(field_id)
        if editor.state == S.CANDIDATE:
            editor.field_model.set_state(S.HIGHLIGHTED)

    def activate(self, field_id: FieldId | str) -> EditorView:
        editor = self.editor(field_id)
        current = self.active_editor
        if current is editor:
            return editor
        if current is not None:
            logger.info(f"Leaving {current.field_id} to edit {editor.field_id}")
            self.cancel(current.field_id)

        if editor.state == S.SAVED:
            editor.field_model.set_state(S.CANDIDATE)
        editor.field_model.set_state(S.ACTIVATING)
        return editor

    def save(self, field_id: FieldId | str, extra: Optional[Dict[str, Any]] = None) -> EditorView:
        editor = self.editor(field_id)
        editor.field_model.set_state(S.SAVING, {"extra": extra} if extra else None)
        return editor

    def cancel(self, field_id: FieldId | str) -> EditorView:
        editor = self.editor(field_id)
        editor.on_revert()
        if editor.state not in (S.INACTIVE, S.CANDIDATE):
            editor.field_model.set_state(S.CANDIDATE)
        return editor

    def _teardown(self, field_model: FieldModel) -> None:
        if field_model.state == S.CANDIDATE:
            field_model.set_state(S.INACTIVE)

    async def stop(self) -> None:
        """End the editing session: revert every region and release the client."""
        for editor in list(self._editors.values()):
            if editor.state != S.INACTIVE:
                self.cancel(editor.field_id)
            self._teardown(editor.field_model)
            editor.destroy()
        self._editors.clear()
        if self._owns_client:
            await self.client.aclose()
