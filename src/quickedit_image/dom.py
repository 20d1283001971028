"""
Small helpers over ``lxml.html`` elements.

The editor manipulates page markup through these functions only, so the
rest of the package never has to care about lxml's text/tail bookkeeping.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from lxml import html as lxml_html
from lxml.html import HtmlElement

FIELD_ID_ATTRIBUTE = "data-quickedit-field-id"


def parse_element(markup: str) -> HtmlElement:
    """Parse markup that contains exactly one root element."""
    return lxml_html.fragment_fromstring(markup.strip())


def _parse_fragments(markup: str) -> List[object]:
    if not markup.strip():
        return []
    return lxml_html.fragments_fromstring(markup)


def inner_html(element: HtmlElement) -> str:
    """Serialise the children of ``element``, trimmed like the rendered markup."""
    parts = [element.text or ""]
    for child in element:
        parts.append(lxml_html.tostring(child, encoding="unicode", with_tail=True))
    return "".join(parts).strip()


def set_inner_html(element: HtmlElement, markup: str) -> None:
    """Replace the content of ``element`` without touching the element itself."""
    for child in list(element):
        element.remove(child)
    element.text = None

    last: Optional[HtmlElement] = None
    for fragment in _parse_fragments(markup):
        if isinstance(fragment, str):
            # Only leading text comes back as a bare string.
            element.text = (element.text or "") + fragment
            continue
        element.append(fragment)
        last = fragment
    if last is not None and last.tail:
        last.tail = last.tail.rstrip() or None


def class_list(element: HtmlElement) -> List[str]:
    return (element.get("class") or "").split()


def has_class(element: HtmlElement, name: str) -> bool:
    return name in class_list(element)


def add_class(element: HtmlElement, *names: str) -> None:
    classes = class_list(element)
    for name in names:
        for token in name.split():
            if token not in classes:
                classes.append(token)
    element.set("class", " ".join(classes))


def remove_class(element: HtmlElement, *names: str) -> None:
    remove = {token for name in names for token in name.split()}
    classes = [name for name in class_list(element) if name not in remove]
    if classes:
        element.set("class", " ".join(classes))
    elif "class" in element.attrib:
        del element.attrib["class"]


def find_by_class(element: HtmlElement, name: str) -> List[HtmlElement]:
    return list(element.find_class(name))


def remove_elements(elements: Iterable[HtmlElement]) -> int:
    count = 0
    for element in list(elements):
        # drop_tree keeps the tail text in place.
        element.drop_tree()
        count += 1
    return count


def extract_field_content(markup: str) -> str:
    """Return the inner markup of the field container found in ``markup``.

    Rendered fields come back wrapped in their own container; splicing the
    wrapper into the region would nest it twice. Markup without a container
    is returned unchanged.
    """
    for fragment in _parse_fragments(markup):
        if isinstance(fragment, str):
            continue
        if fragment.get(FIELD_ID_ATTRIBUTE) is not None:
            return inner_html(fragment)
        nested = fragment.xpath(f".//*[@{FIELD_ID_ATTRIBUTE}]")
        if nested:
            return inner_html(nested[0])
    return markup.strip()
