"""
Quickedit Image - in-place image editing for rendered pages

This package lets a user replace an image shown inline on a page without
leaving it: activate the image, drop or pick a replacement file, edit its
alt/title text and save, with the server rendering every confirmed result.

- Editor state machine driving one editable region per field
- Drag-and-drop and file-picker handling on a drop-zone
- Asynchronous upload/validate/render round trips over HTTP
- Alt/title metadata form rendered into the host toolbar
- Reference FastAPI backend serving the upload, info and save endpoints

Key Components:
    - session: page-level coordinator, single region edited at a time
    - field_model: field/entity state holders and the transition table
    - editors: polymorphic editors (image, plain text) and their registry
    - pipeline: backend requests and response reconciliation
    - toolbar: metadata form and validation error panel
    - configuration: config loading and merging logic
    - backend: FastAPI application implementing the request contracts

Usage:
    Run the reference backend with:
        uvicorn quickedit_image.backend.main:app --reload --host 0.0.0.0 --port 8000
"""

from .editors import EditorView, ImageEditor, PlainTextEditor, create_editor, register_editor
from .field_model import EntityModel, FieldModel
from .models import DropzoneState, EditorState, FieldId, FieldMetadata, LocalFile
from .pipeline import RequestOutcome, UploadPipeline
from .session import EditingSession
from .toolbar import ToolbarHandle

__all__ = [
    "DropzoneState",
    "EditingSession",
    "EditorState",
    "EditorView",
    "EntityModel",
    "FieldId",
    "FieldMetadata",
    "FieldModel",
    "ImageEditor",
    "LocalFile",
    "PlainTextEditor",
    "RequestOutcome",
    "ToolbarHandle",
    "UploadPipeline",
    "create_editor",
    "register_editor",
]
