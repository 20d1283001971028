"""In-place editors, one per field type, looked up through :func:`create_editor`."""

from .base import EDITORS, EditorView, create_editor, register_editor
from .image import ImageEditor
from .plain_text import PlainTextEditor

__all__ = ["EDITORS", "EditorView", "ImageEditor", "PlainTextEditor", "create_editor", "register_editor"]
