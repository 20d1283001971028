from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from omegaconf import DictConfig

from ..configuration import make_runtime_config
from ..models import FieldMetadata, SaveRequest, SaveResult, UploadSuccess, ValidationFailure
from .entities import ContentEntity, EntityRepository, FieldDefinition, ImageItem
from .rendering import RenderError, RenderHook, build_image
from .storage import FileStorage
from .temp_store import TempStore
from .validation import ImageValidationError, validate_image_upload

logger = logging.getLogger(__name__)

FIELD_PATH = "/{entity_type}/{entity_id}/{field_name}/{langcode}/{view_mode}"


@dataclass
class BackendContext:
    config: DictConfig
    repository: EntityRepository
    temp_store: TempStore
    storage: FileStorage
    render_hooks: Dict[str, RenderHook] = field(default_factory=dict)

    def view_modes(self, entity_type: str) -> list[str]:
        return list(self.config.backend.view_modes.get(entity_type, []))


router = APIRouter()


def get_context(request: Request) -> BackendContext:
    return request.app.state.quickedit


def _get_field(
    ctx: BackendContext, entity_type: str, entity_id: str, field_name: str, langcode: str
) -> Tuple[ContentEntity, FieldDefinition, ImageItem]:
    entity = ctx.repository.get(entity_type, entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail="Entity not found")
    if not entity.is_content:
        raise HTTPException(status_code=400, detail="Requested Entity is not a Content Entity.")
    if langcode not in entity.translations:
        raise HTTPException(status_code=404, detail="Translation not found")

    definition = entity.fields.get(field_name)
    if definition is None or definition.type != "image":
        raise HTTPException(status_code=400, detail='Requested Field is not of type "image".')

    # Uncommitted edits win over the stored value.
    pending = ctx.temp_store.get_field(entity.uuid, langcode, field_name)
    if pending is not None:
        item = ImageItem.from_dict(pending)
    else:
        item = entity.translations[langcode].get(field_name) or ImageItem()
    return entity, definition, item


def _render(
    ctx: BackendContext, entity: ContentEntity, field_name: str, view_mode: str, langcode: str, item: ImageItem
) -> str:
    try:
        return build_image(
            entity,
            field_name,
            view_mode,
            langcode,
            item,
            ctx.storage,
            ctx.view_modes(entity.entity_type),
            ctx.render_hooks,
        )
    except RenderError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post(FIELD_PATH)
async def upload(
    entity_type: str,
    entity_id: str,
    field_name: str,
    langcode: str,
    view_mode: str,
    image: UploadFile = File(..., alias="files[image]"),
    ctx: BackendContext = Depends(get_context),
) -> Dict[str, Any]:
    entity, definition, item = _get_field(ctx, entity_type, entity_id, field_name, langcode)
    settings = definition.settings

    directory = ctx.storage.prepare_directory(settings.file_directory)
    if directory is None:
        return ValidationFailure(main_error="The destination directory could not be created.", errors=[]).model_dump()

    content = await image.read()
    await image.close()
    filename = image.filename or "image"

    try:
        processed = validate_image_upload(
            filename,
            content,
            settings,
            default_max_filesize=ctx.config.backend.max_filesize,
            default_extensions=list(ctx.config.backend.file_extensions),
        )
    except ImageValidationError as exc:
        logger.info(f"Upload to {entity_type}/{entity_id}/{field_name} rejected: {exc}")
        # main_error goes in the drop-zone, errors in the toolbar.
        return ValidationFailure(main_error="The requested image failed validation.", errors=exc.errors).model_dump()

    record = ctx.storage.save(directory, filename, processed.content)
    new_item = ImageItem(
        target_id=record.fid,
        alt=item.alt,
        title=item.title,
        width=processed.width,
        height=processed.height,
    )
    ctx.temp_store.set_field(entity.uuid, langcode, field_name, new_item.to_dict())

    html = _render(ctx, entity, field_name, view_mode, langcode, new_item)
    return UploadSuccess(fid=record.fid, html=html).model_dump()


@router.get(FIELD_PATH + "/info", response_model=FieldMetadata)
def get_info(
    entity_type: str,
    entity_id: str,
    field_name: str,
    langcode: str,
    view_mode: str,
    ctx: BackendContext = Depends(get_context),
) -> FieldMetadata:
    _, definition, item = _get_field(ctx, entity_type, entity_id, field_name, langcode)
    settings = definition.settings
    return FieldMetadata(
        alt=item.alt,
        title=item.title,
        alt_field=settings.alt_field,
        title_field=settings.title_field,
        alt_field_required=settings.alt_field_required,
        title_field_required=settings.title_field_required,
    )


@router.post(FIELD_PATH + "/save")
def save(
    entity_type: str,
    entity_id: str,
    field_name: str,
    langcode: str,
    view_mode: str,
    payload: SaveRequest,
    ctx: BackendContext = Depends(get_context),
) -> Dict[str, Any]:
    entity, definition, item = _get_field(ctx, entity_type, entity_id, field_name, langcode)
    settings = definition.settings

    if payload.fid is not None and payload.fid != item.target_id:
        raise HTTPException(status_code=409, detail="File does not match the pending edit")

    alt = item.alt if payload.alt is None else payload.alt
    title = item.title if payload.title is None else payload.title

    errors = []
    if settings.alt_field and settings.alt_field_required and not alt.strip():
        errors.append("Alternative text field is required.")
    if settings.title_field and settings.title_field_required and not title.strip():
        errors.append("Title field is required.")
    if errors:
        return ValidationFailure(main_error="The image could not be saved.", errors=errors).model_dump()

    committed = ImageItem(target_id=item.target_id, alt=alt, title=title, width=item.width, height=item.height)
    html = _render(ctx, entity, field_name, view_mode, langcode, committed)
    ctx.repository.commit(entity, langcode, field_name, committed)
    ctx.temp_store.delete_field(entity.uuid, langcode, field_name)
    logger.info(f"Committed {entity_type}/{entity_id}/{field_name} ({langcode}), file {committed.target_id}")
    return SaveResult(html=html).model_dump()


def create_app(
    config: Optional[DictConfig] = None,
    repository: Optional[EntityRepository] = None,
    render_hooks: Optional[Dict[str, RenderHook]] = None,
) -> FastAPI:
    config = config if config is not None else make_runtime_config()
    backend = config.backend

    app = FastAPI(title="Quickedit Image API", version="0.1.0")

    allowed_origins = ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    upload_root = Path(backend.upload_dir)
    app.state.quickedit = BackendContext(
        config=config,
        repository=repository or EntityRepository(),
        temp_store=TempStore(Path(backend.temp_store_path)),
        storage=FileStorage(upload_root, backend.files_url),
        render_hooks=dict(render_hooks or {}),
    )

    @app.get("/healthz")
    def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    app.include_router(router, prefix=f"/{backend.module}")
    app.mount(backend.files_url, StaticFiles(directory=upload_root, check_dir=False), name="files")
    return app


app = create_app()
