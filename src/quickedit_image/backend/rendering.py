from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence

from lxml import html as lxml_html
from lxml.html import builder as E

from ..dom import FIELD_ID_ATTRIBUTE
from .entities import ContentEntity, ImageItem
from .storage import FileStorage

# module name -> hook(entity, field_name, view_mode, langcode, item) returning markup
RenderHook = Callable[[ContentEntity, str, str, str, ImageItem], Optional[str]]


class RenderError(LookupError):
    pass


def render_image_field(
    entity: ContentEntity,
    field_name: str,
    view_mode: str,
    langcode: str,
    item: ImageItem,
    storage: FileStorage,
) -> str:
    """Render an image field inside its quickedit container."""
    field_id = f"{entity.entity_type}/{entity.id}/{field_name}/{langcode}/{view_mode}"
    css_name = field_name.replace("_", "-")
    container = E.DIV(
        E.CLASS(f"field field--name-{css_name} field--type-image"),
        {FIELD_ID_ATTRIBUTE: field_id},
    )

    record = storage.get(item.target_id)
    if record is not None:
        img = E.IMG(src=record.url, alt=item.alt)
        if item.title:
            img.set("title", item.title)
        if item.width and item.height:
            img.set("width", str(item.width))
            img.set("height", str(item.height))
        container.append(img)

    return lxml_html.tostring(container, encoding="unicode")


def build_image(
    entity: ContentEntity,
    field_name: str,
    view_mode: str,
    langcode: str,
    item: ImageItem,
    storage: FileStorage,
    view_modes: Sequence[str],
    render_hooks: Dict[str, RenderHook],
) -> str:
    """Render the field for ``view_mode``.

    View modes the entity type knows render the field directly. Any other
    view mode id has the form ``<module>-<rest>`` and is rendered by the hook
    that module registered.
    """
    if view_mode in view_modes:
        return render_image_field(entity, field_name, view_mode, langcode, item, storage)

    module = view_mode.split("-", 1)[0]
    hook = render_hooks.get(module)
    if hook is None:
        raise RenderError(f"No renderer for view mode '{view_mode}'")
    output = hook(entity, field_name, view_mode, langcode, item)
    if output is None:
        raise RenderError(f"Module '{module}' could not render view mode '{view_mode}'")
    return output
