"""
Pytest configuration and fixtures for Quickedit Image tests.
"""

import asyncio
import os
import shutil
import tempfile
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Set test environment variables before importing the app
os.environ["QUICKEDIT_UPLOAD_DIR"] = tempfile.mkdtemp(prefix="quickedit_test_uploads_")
os.environ["QUICKEDIT_TEMP_STORE_PATH"] = str(Path(tempfile.mkdtemp(prefix="quickedit_test_data_")) / "tempstore.db")

from quickedit_image.backend.entities import ContentEntity, EntityRepository, FieldDefinition, ImageFieldSettings, ImageItem
from quickedit_image.backend.main import create_app
from quickedit_image.configuration import make_runtime_config
from quickedit_image.dom import parse_element
from quickedit_image.session import EditingSession
from quickedit_image.toolbar import ToolbarHandle

FIELD_ID = "node/1/field_image/en/full"
REGION_MARKUP = f'<div data-quickedit-field-id="{FIELD_ID}" class="field"><img src="/files/old.jpg" alt="Old"></div>'


@pytest.fixture(scope="session", autouse=True)
def test_dirs():
    """Cleanup the directories created for the module-level app."""
    yield
    shutil.rmtree(os.environ["QUICKEDIT_UPLOAD_DIR"], ignore_errors=True)
    shutil.rmtree(Path(os.environ["QUICKEDIT_TEMP_STORE_PATH"]).parent, ignore_errors=True)


@pytest.fixture
def config(tmp_path):
    """Runtime config with backend storage inside the test's tmp_path."""
    return make_runtime_config({
        "client": {"base_url": "http://testserver"},
        "backend": {
            "upload_dir": str(tmp_path / "uploads"),
            "temp_store_path": str(tmp_path / "data" / "tempstore.db"),
        },
    })


@pytest.fixture
def repository():
    """One article with a single-value image field and a text field."""
    repo = EntityRepository()
    repo.add(ContentEntity(
        entity_type="node",
        id="1",
        fields={
            "field_image": FieldDefinition(
                name="field_image",
                settings=ImageFieldSettings(
                    alt_field=True,
                    alt_field_required=True,
                    title_field=True,
                    title_field_required=False,
                    min_resolution="10x10",
                    max_resolution="400x400",
                ),
            ),
            "title": FieldDefinition(name="title", type="string"),
        },
        translations={"en": {"field_image": ImageItem(alt="Old"), "title": "Hello"}},
    ))
    repo.add(ContentEntity(entity_type="block_config", id="7", is_content=False, translations={"en": {}}))
    return repo


@pytest.fixture
def backend_app(config, repository):
    return create_app(config, repository)


@pytest.fixture
def client(backend_app):
    """Create a test client for the FastAPI app."""
    return TestClient(backend_app)


def make_image(width: int = 64, height: int = 48, fmt: str = "JPEG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(200, 40, 40)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    return make_image()


@pytest.fixture
def page():
    """A rendered image field and the toolbar group the host gives it."""
    region = parse_element(REGION_MARKUP)
    toolbar = ToolbarHandle(parse_element('<div class="quickedit-toolgroup wysiwyg-main"></div>'))
    return region, toolbar


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")


def asgi_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


async def open_session(config, http_client, page, file_picker=None) -> EditingSession:
    kwargs = {"file_picker": file_picker} if file_picker else {}
    session = EditingSession(config, http_client, **kwargs)
    region, toolbar = page
    session.attach(region, toolbar)
    session.start()
    return session


async def activate(session: EditingSession, field_id: str = FIELD_ID):
    """Activate a field and wait for the deferred 'active' state and its metadata request."""
    editor = session.activate(field_id)
    await settle()
    task = getattr(editor, "metadata_task", None)
    if task is not None:
        await task
    return editor


async def settle(turns: int = 3) -> None:
    for _ in range(turns):
        await asyncio.sleep(0)


DEFAULT_INFO = {
    "alt": "Old",
    "title": "",
    "alt_field": True,
    "title_field": False,
    "alt_field_required": True,
    "title_field_required": False,
}


def backend_stub(upload=None, info=None, save=None, calls=None):
    """MockTransport handler answering the editor's info, upload and save requests.

    Each answer is a JSON body, an ``httpx.Response``, or a callable taking the
    request (sync or async) that returns one of those or raises.
    """

    async def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        path = request.url.path
        if request.method == "GET" and path.endswith("/info"):
            answer = DEFAULT_INFO if info is None else info
        elif path.endswith("/save"):
            answer = save
        else:
            answer = upload
        if callable(answer):
            answer = answer(request)
            if asyncio.iscoroutine(answer):
                answer = await answer
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    return handler
