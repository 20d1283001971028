"""
In-place editor for single-value image fields.

While active, the region shows a drop-zone: dropping a file on it, or
clicking it to open the file picker, uploads the file and replaces the
image with the server's rendering. Alt/title text is edited in a form the
editor places in the host toolbar.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence, Tuple

from .. import templates
from ..dom import add_class, extract_field_content, find_by_class, remove_class, remove_elements, set_inner_html
from ..events import EventTarget, UIEvent, stop_event
from ..field_model import FieldModel
from ..models import DropzoneState, EditorState, FieldMetadata, LocalFile, UploadSuccess, ValidationFailure
from ..pipeline import RequestOutcome
from .base import EditorView, register_editor

logger = logging.getLogger(__name__)

S = EditorState

# States in which a dropped or picked file is uploaded.
UPLOAD_STATES = frozenset({S.ACTIVE, S.CHANGED, S.INVALID})


@register_editor("image")
class ImageEditor(EditorView):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.messages = self.config.messages
        self._dropzone: Optional[EventTarget] = None
        self._upload: Optional[Tuple[asyncio.Task, int]] = None
        self._metadata: Optional[Tuple[asyncio.Task, int]] = None

    def on_state_change(self, field_model: FieldModel, state: EditorState, options: Optional[Dict[str, Any]]) -> None:
        from_state = field_model.previous_state
        if state == S.CANDIDATE:
            if from_state != S.INACTIVE:
                remove_elements(find_by_class(self.element, templates.DROPZONE_CLASS))
                self._dropzone = None
                remove_class(self.element, templates.EDITING_CLASS)
            if from_state == S.INVALID:
                self.remove_validation_errors()

        elif state == S.ACTIVATING:
            self._begin_activation()

        elif state == S.ACTIVE:
            add_class(self.element, templates.EDITING_CLASS)
            self.render_dropzone(DropzoneState.UPLOAD.value, self.messages.upload)
            self.render_toolbar()

        elif state == S.SAVING:
            if from_state == S.INVALID:
                self.remove_validation_errors()
            self.save(options)

        elif state == S.INVALID:
            self.show_validation_errors()

        # inactive, highlighted, changed and saved need no work here.

    # Drop-zone

    @property
    def dropzone(self) -> Optional[EventTarget]:
        return self._dropzone

    def render_dropzone(self, state: str, text: str) -> EventTarget:
        existing = find_by_class(self.element, templates.DROPZONE_CLASS)
        if existing:
            element = existing[0]
            remove_class(element, "upload error hover loading")
            add_class(element, state)
            set_inner_html(find_by_class(element, templates.DROPZONE_TEXT_CLASS)[0], text)
        else:
            element = templates.dropzone(state, text)
            self.element.append(element)

        if self._dropzone is None or self._dropzone.element is not element:
            self._dropzone = self._bind_dropzone(element)
        return self._dropzone

    def _bind_dropzone(self, element) -> EventTarget:
        target = EventTarget(element)
        target.on("dragover", stop_event)
        target.on("dragenter", self._on_dragenter)
        target.on("dragleave", self._on_dragleave)
        target.on("drop", self._on_drop)
        target.on("click", self._on_click)
        return target

    def _on_dragenter(self, event: UIEvent) -> None:
        stop_event(event)
        add_class(self._dropzone.element, "hover")

    def _on_dragleave(self, event: UIEvent) -> None:
        stop_event(event)
        remove_class(self._dropzone.element, "hover")

    def _on_drop(self, event: UIEvent) -> None:
        stop_event(event)
        # Something other than a file (e.g. a page element) was dropped.
        if not event.files:
            return
        remove_class(self._dropzone.element, "hover")
        self.receive_files(event.files)

    def _on_click(self, event: UIEvent) -> None:
        stop_event(event)
        self.file_picker(self.receive_files)

    def receive_files(self, files: Sequence[LocalFile]) -> Optional[asyncio.Task]:
        if not files:
            return None
        if len(files) > 1:
            self.render_dropzone(DropzoneState.ERROR.value, self.messages.too_many_files)
            return None
        return self.start_upload(files[0])

    # Upload

    @property
    def upload_in_flight(self) -> bool:
        if self._upload is None:
            return False
        task, epoch = self._upload
        return not task.done() and epoch == self.activation_epoch

    @property
    def upload_task(self) -> Optional[asyncio.Task]:
        return self._upload[0] if self._upload else None

    def start_upload(self, file: LocalFile) -> Optional[asyncio.Task]:
        if self.state not in UPLOAD_STATES:
            logger.info(f"{self.field_id}: ignoring {file.filename} in state '{self.state.value}'")
            return None
        # A second upload for this region is ignored until the first resolves.
        if self.upload_in_flight:
            logger.info(f"{self.field_id}: upload already in progress, ignoring {file.filename}")
            return None
        task = asyncio.get_running_loop().create_task(self.pipeline.upload_image(self, file))
        self._upload = (task, self.activation_epoch)
        return task

    def apply_upload(self, response: UploadSuccess) -> None:
        self.buffer.fid = response.fid
        # Enables the host's save button. A save waiting on this upload keeps the field in 'saving'.
        if self.state != S.SAVING:
            self.request_changed()
        self.field_model.entity.in_temp_store = True
        self.remove_validation_errors()
        # Only the inner markup is replaced, so bindings on the region survive.
        set_inner_html(self.element, extract_field_content(response.html))
        self._dropzone = None

    def report_transport_error(self, message: str) -> None:
        self.render_dropzone(DropzoneState.ERROR.value, message)

    def report_validation_failure(self, failure: ValidationFailure) -> None:
        self.render_dropzone(DropzoneState.ERROR.value, failure.main_error)
        super().report_validation_failure(failure)

    # Toolbar

    @property
    def metadata_task(self) -> Optional[asyncio.Task]:
        return self._metadata[0] if self._metadata else None

    def render_toolbar(self) -> Optional[asyncio.Task]:
        if self.toolbar.has_form():
            return None
        # A fetch started by an earlier activation will be discarded, so it cannot be reused.
        if self._metadata is not None:
            task, epoch = self._metadata
            if not task.done() and epoch == self.activation_epoch:
                return task
        task = asyncio.get_running_loop().create_task(self.pipeline.fetch_metadata(self))
        self._metadata = (task, self.activation_epoch)
        return task

    def render_toolbar_form(self, metadata: FieldMetadata) -> None:
        if self.toolbar.has_form():
            return
        self.toolbar.render_form(metadata, self._on_toolbar_edit)

    def _on_toolbar_edit(self, event: UIEvent) -> None:
        self.buffer.attributes.update(self.toolbar.current_values())
        self.request_changed()

    def save_payload(self) -> Dict[str, Any]:
        return {"fid": self.buffer.fid, **self.extra_payload()}

    def save(self, options: Optional[Dict[str, Any]] = None) -> asyncio.Task:
        if not self.upload_in_flight:
            return super().save(options)
        logger.info(f"{self.field_id}: save waits for the upload in progress")
        self._save_task = asyncio.get_running_loop().create_task(self._save_after_upload(self.upload_task, options))
        return self._save_task

    async def _save_after_upload(self, upload: asyncio.Task, options: Optional[Dict[str, Any]]) -> RequestOutcome:
        outcome = await upload
        if outcome != RequestOutcome.SUCCESS:
            # An invalid upload already moved the field to 'invalid'.
            self.return_to_changed()
            return outcome
        if self.state != S.SAVING:
            return RequestOutcome.DISCARDED
        return await self.pipeline.save_field(self, self.build_payload(options))

    def revert(self) -> None:
        super().revert()
        self._dropzone = None
