from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence

from lxml.html import HtmlElement

from . import templates
from .dom import find_by_class, remove_elements
from .events import EventTarget, UIEvent
from .models import FieldMetadata

logger = logging.getLogger(__name__)


class ToolbarHandle:
    """The host toolbar's main tool group for one field.

    The host passes this in when it attaches a region, so editors never look
    the toolbar up in the page. Whatever is rendered here outlives a single
    activation: a metadata form that already exists is reused.
    """

    def __init__(self, main_toolgroup: HtmlElement) -> None:
        self.main_toolgroup = main_toolgroup
        self._form_target: Optional[EventTarget] = None

    @property
    def form(self) -> Optional[EventTarget]:
        if self._form_target is not None and self._form_target.element.getparent() is None:
            # Host re-rendered its toolbar and dropped our form.
            self._form_target = None
        return self._form_target

    def has_form(self) -> bool:
        return self.form is not None

    def render_form(self, metadata: FieldMetadata, on_edit: Callable[[UIEvent], None]) -> EventTarget:
        element = templates.toolbar_form(metadata)
        self.main_toolgroup.append(element)
        target = EventTarget(element)
        target.on("keyup paste", on_edit)
        self._form_target = target
        return target

    def input_element(self, name: str) -> Optional[HtmlElement]:
        form = self.form
        if form is None:
            return None
        matches = form.element.xpath(".//input[@name=$name]", name=name)
        return matches[0] if matches else None

    def enter_text(self, name: str, value: str, event_type: str = "keyup") -> UIEvent:
        """Write ``value`` into the named input and fire ``event_type`` on the form."""
        field = self.input_element(name)
        if field is None:
            raise KeyError(f"Toolbar has no '{name}' input")
        field.set("value", value)
        return self.form.trigger(UIEvent(event_type, data={name: value}))

    def current_values(self) -> Dict[str, str]:
        form = self.form
        if form is None:
            return {}
        return {field.get("name"): field.get("value", "") for field in form.element.xpath(".//input[@name]")}

    def show_errors(self, errors: Sequence[str]) -> Optional[HtmlElement]:
        self.remove_errors()
        if not errors:
            return None
        panel = templates.validation_errors(errors)
        self.main_toolgroup.append(panel)
        return panel

    def remove_errors(self) -> None:
        removed = remove_elements(find_by_class(self.main_toolgroup, templates.ERRORS_CLASS))
        if removed:
            logger.debug(f"Removed {removed} validation panel(s) from toolbar")

    def error_messages(self) -> list[str]:
        return [item.text_content() for panel in find_by_class(self.main_toolgroup, templates.ERRORS_CLASS) for item in panel.iter("li")]
