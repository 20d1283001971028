from __future__ import annotations

from typing import Sequence

from lxml.html import HtmlElement
from lxml.html import builder as E

from .dom import set_inner_html
from .models import FieldMetadata

DROPZONE_CLASS = "quickedit-image-dropzone"
DROPZONE_TEXT_CLASS = "quickedit-image-text"
DROPZONE_ICON_CLASS = "quickedit-image-icon"
TOOLBAR_FORM_CLASS = "quickedit-image-field-info"
ERRORS_CLASS = "quickedit-image-errors"
EDITING_CLASS = "quickedit-image-element"
VALIDATION_ERROR_CLASS = "quickedit-validation-error"
FORM_REQUIRED_CLASS = "form-required"


def dropzone(state: str, text: str) -> HtmlElement:
    # ``text`` may carry inline markup (e.g. the file name in <i>).
    label = E.SPAN(E.CLASS(DROPZONE_TEXT_CLASS))
    set_inner_html(label, text)
    return E.DIV(
        E.CLASS(f"{DROPZONE_CLASS} {state}"),
        E.I(E.CLASS(DROPZONE_ICON_CLASS)),
        label,
    )


def _attribute_inputs(name: str, title: str, value: str, required: bool) -> list:
    label = E.LABEL(title, {"for": name})
    if required:
        label.set("class", FORM_REQUIRED_CLASS)
    field = E.INPUT(type="text", name=name, value=value, placeholder=value)
    if required:
        field.set("required", "required")
    return [label, field]


def toolbar_form(metadata: FieldMetadata) -> HtmlElement:
    form = E.FORM(E.CLASS(TOOLBAR_FORM_CLASS))
    if metadata.alt_field:
        form.extend(_attribute_inputs("alt", "Alt", metadata.alt, metadata.alt_field_required))
    if metadata.title_field:
        form.extend(_attribute_inputs("title", "Title", metadata.title, metadata.title_field_required))
    return form


def validation_errors(errors: Sequence[str]) -> HtmlElement:
    return E.DIV(
        E.CLASS(ERRORS_CLASS),
        E.UL(*[E.LI(message) for message in errors]),
    )
