"""
Upload and validation pipeline.

Turns user intents coming from an editor into backend requests and folds the
JSON answers back into the editor:

- metadata fetch (GET ``.../info``) builds the alt/title toolbar form
- image upload (POST, multipart ``files[image]``) validates and stores a file
- save (POST ``.../save``) commits the pending edit

Every answer is one of three kinds. A body without ``main_error`` is a
success, a body with ``main_error`` is a validation failure the user can fix,
anything else (network error, HTTP error status, unparseable body) is a
transport failure. Transport failures never put the field into ``invalid``.

The pipeline only holds the editor while a request is in flight. Answers that
arrive after the editor was deactivated (or re-activated) are discarded.
"""

from __future__ import annotations

import html
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx
from omegaconf import DictConfig
from pydantic import ValidationError

from .errors import TransportError
from .models import DropzoneState, EditorState, FieldId, FieldMetadata, LocalFile, SaveResult, UploadSuccess, ValidationFailure

if TYPE_CHECKING:  # pragma: no cover
    from .editors.base import EditorView
    from .editors.image import ImageEditor

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "files[image]"

# A save answer is only folded in while the field is still waiting for it.
SAVE_STATES = frozenset({EditorState.SAVING})


class RequestOutcome(str, Enum):
    SUCCESS = "success"
    INVALID = "invalid"
    TRANSPORT_ERROR = "transport_error"
    DISCARDED = "discarded"


class UploadPipeline:
    def __init__(self, client: httpx.AsyncClient, config: DictConfig) -> None:
        self.client = client
        self.config = config
        self.messages = config.messages

    def endpoint(self, field_id: FieldId, suffix: Optional[str] = None) -> str:
        return field_id.path(self.config.client.module, suffix)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        logger.info(f"{method} {url}")
        try:
            response = await self.client.request(
                method,
                url,
                headers={"Accept": "application/json", "Cache-Control": "no-cache"},
                **kwargs,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            logger.warning(f"{method} {url} failed: {exc}")
            raise TransportError(str(exc)) from exc
        except ValueError as exc:
            logger.warning(f"{method} {url} returned a body that is not JSON: {exc}")
            raise TransportError("Malformed JSON response") from exc

        if not isinstance(data, dict):
            logger.warning(f"{method} {url} returned {type(data).__name__} instead of an object")
            raise TransportError("Unexpected JSON response")
        return data

    @staticmethod
    def _validation_failure(data: Dict[str, Any]) -> Optional[ValidationFailure]:
        if not data.get("main_error"):
            return None
        return ValidationFailure.model_validate(data)

    def _discard(self, editor: "EditorView", epoch: int, what: str, **kwargs: Any) -> bool:
        if editor.accepts_response(epoch, **kwargs):
            return False
        logger.info(f"{editor.field_id}: {what} response discarded, field is '{editor.state.value}'")
        return True

    async def fetch_metadata(self, editor: "ImageEditor") -> Optional[FieldMetadata]:
        epoch = editor.activation_epoch
        url = self.endpoint(editor.field_id, "info")
        try:
            data = await self._request("GET", url)
            metadata = FieldMetadata.model_validate(data)
        except (TransportError, ValidationError) as exc:
            if not self._discard(editor, epoch, "metadata"):
                logger.warning(f"{editor.field_id}: metadata unavailable: {exc}")
                editor.report_transport_error(self.messages.server_error)
            return None

        if self._discard(editor, epoch, "metadata"):
            return None
        editor.render_toolbar_form(metadata)
        return metadata

    async def upload_image(self, editor: "ImageEditor", file: LocalFile) -> RequestOutcome:
        epoch = editor.activation_epoch
        editor.render_dropzone(
            DropzoneState.LOADING.value,
            self.messages.uploading.format(filename=html.escape(file.filename)),
        )

        url = self.endpoint(editor.field_id)
        logger.info(f"{editor.field_id}: uploading {file.filename} ({file.size} bytes)")
        try:
            data = await self._request(
                "POST",
                url,
                files={UPLOAD_FIELD: (file.filename, file.content, file.content_type)},
            )
            failure = self._validation_failure(data)
            success = None if failure else UploadSuccess.model_validate(data)
        except (TransportError, ValidationError) as exc:
            if self._discard(editor, epoch, "upload"):
                return RequestOutcome.DISCARDED
            logger.warning(f"{editor.field_id}: upload of {file.filename} failed: {exc}")
            editor.report_transport_error(self.messages.server_error)
            return RequestOutcome.TRANSPORT_ERROR

        if self._discard(editor, epoch, "upload"):
            return RequestOutcome.DISCARDED
        if failure is not None:
            logger.info(f"{editor.field_id}: upload rejected: {failure.main_error}")
            editor.report_validation_failure(failure)
            return RequestOutcome.INVALID

        editor.apply_upload(success)
        return RequestOutcome.SUCCESS

    async def save_field(self, editor: "EditorView", payload: Dict[str, Any]) -> RequestOutcome:
        epoch = editor.activation_epoch
        url = self.endpoint(editor.field_id, "save")
        try:
            data = await self._request("POST", url, json=payload)
            failure = self._validation_failure(data)
            result = None if failure else SaveResult.model_validate(data)
        except (TransportError, ValidationError) as exc:
            if self._discard(editor, epoch, "save", states=SAVE_STATES):
                return RequestOutcome.DISCARDED
            logger.warning(f"{editor.field_id}: save failed: {exc}")
            editor.report_transport_error(self.messages.server_error)
            editor.return_to_changed()
            return RequestOutcome.TRANSPORT_ERROR

        if self._discard(editor, epoch, "save", states=SAVE_STATES):
            return RequestOutcome.DISCARDED
        if failure is not None:
            logger.info(f"{editor.field_id}: save rejected: {failure.main_error}")
            editor.report_validation_failure(failure)
            return RequestOutcome.INVALID

        editor.apply_saved(result)
        return RequestOutcome.SUCCESS
