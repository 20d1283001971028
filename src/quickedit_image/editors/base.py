from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, FrozenSet, Optional, Tuple, Type

from lxml.html import HtmlElement
from omegaconf import DictConfig

from .. import templates
from ..configuration import build_ui_settings
from ..dom import add_class, extract_field_content, inner_html, remove_class, set_inner_html
from ..errors import UnknownEditorError
from ..events import FilePicker, no_file_picker
from ..field_model import FieldModel
from ..models import DisplayModel, EditBuffer, EditorState, FieldId, SaveResult, UISettings, ValidationFailure
from ..pipeline import UploadPipeline
from ..toolbar import ToolbarHandle

logger = logging.getLogger(__name__)

# States in which a backend answer may still be folded into the editor.
RESPONSIVE_STATES = frozenset({EditorState.ACTIVE, EditorState.CHANGED, EditorState.INVALID, EditorState.SAVING})


class EditorView(ABC):
    """In-place editor bound to one field region.

    Subclasses implement :meth:`on_state_change` for their field type; this
    base class keeps the pieces every editor shares. The display model holds
    the confirmed markup :meth:`revert` goes back to, the edit buffer holds
    what the next save sends, and the activation epoch is used to discard
    stale backend answers.
    """

    field_types: ClassVar[Tuple[str, ...]] = ()

    def __init__(
        self,
        element: HtmlElement,
        field_model: FieldModel,
        toolbar: ToolbarHandle,
        pipeline: UploadPipeline,
        config: DictConfig,
        file_picker: FilePicker = no_file_picker,
    ) -> None:
        self.element = element
        self.field_model = field_model
        self.toolbar = toolbar
        self.pipeline = pipeline
        self.config = config
        self.file_picker = file_picker
        self.display = DisplayModel(html=inner_html(element))
        self.buffer = EditBuffer()
        self.validation_errors: list[str] = []
        self.activation_epoch = 0
        self._save_task: Optional[asyncio.Task] = None
        field_model.on_state_change(self.on_state_change)

    @property
    def field_id(self) -> FieldId:
        return self.field_model.field_id

    @property
    def state(self) -> EditorState:
        return self.field_model.state

    @abstractmethod
    def on_state_change(self, field_model: FieldModel, state: EditorState, options: Optional[Dict[str, Any]]) -> None:
        ...

    def _begin_activation(self) -> None:
        self.activation_epoch += 1
        self.display = DisplayModel(html=inner_html(self.element))
        self.buffer.clear()
        # Entering 'active' from inside this notification would nest state
        # changes; let the current change finish propagating first.
        self.field_model.defer_state(EditorState.ACTIVE, expected=EditorState.ACTIVATING)

    def revert(self) -> None:
        """Restore the markup confirmed at the latest activation or save."""
        set_inner_html(self.element, self.display.html)

    def on_revert(self) -> None:
        self.revert()

    def get_ui_settings(self) -> UISettings:
        return build_ui_settings(self.config)

    def accepts_response(self, epoch: int, states: FrozenSet[EditorState] = RESPONSIVE_STATES) -> bool:
        return epoch == self.activation_epoch and self.state in states

    def show_validation_errors(self) -> None:
        self.toolbar.show_errors(self.validation_errors)
        add_class(self.element, templates.VALIDATION_ERROR_CLASS)

    def remove_validation_errors(self) -> None:
        self.validation_errors = []
        self.toolbar.remove_errors()
        remove_class(self.element, templates.VALIDATION_ERROR_CLASS)

    def request_changed(self) -> None:
        if self.field_model.can_transition(EditorState.CHANGED):
            self.field_model.set_state(EditorState.CHANGED)
        else:
            logger.debug(f"{self.field_id}: edit ignored in state '{self.state.value}'")

    def extra_payload(self) -> Dict[str, Any]:
        """Attributes merged into the saved value, taken from the edit buffer."""
        return dict(self.buffer.attributes)

    def save_payload(self) -> Dict[str, Any]:
        return dict(self.extra_payload())

    def build_payload(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = self.save_payload()
        if options and options.get("extra"):
            payload.update(options["extra"])
        return payload

    def save(self, options: Optional[Dict[str, Any]] = None) -> asyncio.Task:
        payload = self.build_payload(options)
        self._save_task = asyncio.get_running_loop().create_task(self.pipeline.save_field(self, payload))
        return self._save_task

    @property
    def save_task(self) -> Optional[asyncio.Task]:
        return self._save_task

    def report_transport_error(self, message: str) -> None:
        self.toolbar.show_errors([message])

    def report_validation_failure(self, failure: ValidationFailure) -> None:
        self.validation_errors = list(failure.errors)
        if self.state == EditorState.INVALID:
            self.show_validation_errors()
        else:
            self.field_model.set_state(EditorState.INVALID)

    def return_to_changed(self) -> None:
        if self.state == EditorState.SAVING:
            self.field_model.set_state(EditorState.CHANGED)

    def apply_saved(self, result: SaveResult) -> None:
        set_inner_html(self.element, extract_field_content(result.html))
        self.display = DisplayModel(html=inner_html(self.element))
        self.buffer.clear()
        self.field_model.entity.in_temp_store = False
        self.remove_validation_errors()
        if self.state == EditorState.SAVING:
            self.field_model.set_state(EditorState.SAVED)

    def destroy(self) -> None:
        self.field_model.remove_listener(self.on_state_change)


EDITORS: Dict[str, Type[EditorView]] = {}


def register_editor(*field_types: str) -> Callable[[Type[EditorView]], Type[EditorView]]:
    def _register(cls: Type[EditorView]) -> Type[EditorView]:
        cls.field_types = tuple(field_types)
        for field_type in field_types:
            EDITORS[field_type] = cls
        return cls

    return _register


def create_editor(field_type: str, **kwargs: Any) -> EditorView:
    try:
        editor_cls = EDITORS[field_type]
    except KeyError:
        raise UnknownEditorError(f"No in-place editor registered for field type '{field_type}'") from None
    return editor_cls(**kwargs)
