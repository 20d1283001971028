from __future__ import annotations

from typing import Any, Dict, Optional

from ..dom import add_class, remove_class
from ..events import EventTarget, UIEvent
from ..field_model import FieldModel
from ..models import EditorState, UISettings, ValidationFailure
from .base import EditorView, register_editor

S = EditorState

PLAIN_TEXT_CLASS = "quickedit-editor-plain-text"


@register_editor("string", "text", "plain_text")
class PlainTextEditor(EditorView):
    """Edits a text field directly inside its rendered element."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._target: Optional[EventTarget] = None

    def on_state_change(self, field_model: FieldModel, state: EditorState, options: Optional[Dict[str, Any]]) -> None:
        from_state = field_model.previous_state
        if state == S.CANDIDATE:
            if from_state != S.INACTIVE:
                self.element.attrib.pop("contenteditable", None)
                remove_class(self.element, PLAIN_TEXT_CLASS)
                if self._target is not None:
                    self._target.off()
                    self._target = None
            if from_state == S.INVALID:
                self.remove_validation_errors()

        elif state == S.ACTIVATING:
            self._begin_activation()

        elif state == S.ACTIVE:
            self.element.set("contenteditable", "true")
            add_class(self.element, PLAIN_TEXT_CLASS)
            self._target = EventTarget(self.element)
            self._target.on("input keyup paste", self._on_input)

        elif state == S.SAVING:
            if from_state == S.INVALID:
                self.remove_validation_errors()
            self.save(options)

        elif state == S.INVALID:
            self.show_validation_errors()

    def _on_input(self, event: UIEvent) -> None:
        self.buffer.attributes["value"] = self.text
        self.request_changed()

    @property
    def text(self) -> str:
        return self.element.text_content().strip()

    def enter_text(self, text: str) -> UIEvent:
        """Replace the element's text the way typing into it would."""
        if self._target is None:
            raise RuntimeError(f"{self.field_id} is not being edited")
        for child in list(self.element):
            self.element.remove(child)
        self.element.text = text
        return self._target.trigger(UIEvent("input", data={"value": text}))

    def report_validation_failure(self, failure: ValidationFailure) -> None:
        # Without a drop-zone the main error is the only place left to say what went wrong.
        if not failure.errors:
            failure = failure.model_copy(update={"errors": [failure.main_error]})
        super().report_validation_failure(failure)

    def get_ui_settings(self) -> UISettings:
        settings = super().get_ui_settings()
        return settings.model_copy(update={"padding": True, "full_width_toolbar": False})
