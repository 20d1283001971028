"""
Tests for the editing session and the editor registry.
"""

import asyncio
import json

import pytest

from conftest import FIELD_ID, REGION_MARKUP, activate, backend_stub, mock_client, open_session, settle
from quickedit_image import templates
from quickedit_image.dom import find_by_class, has_class, inner_html, parse_element
from quickedit_image.editors import EDITORS, ImageEditor, PlainTextEditor, create_editor
from quickedit_image.errors import UnknownEditorError, UnknownFieldError
from quickedit_image.models import EditorState, FieldId, LocalFile
from quickedit_image.session import EditingSession
from quickedit_image.toolbar import ToolbarHandle

S = EditorState

TITLE_ID = "node/1/title/en/full"
SECOND_IMAGE_ID = "node/2/field_image/en/teaser"


def new_toolbar():
    return ToolbarHandle(parse_element('<div class="quickedit-toolgroup wysiwyg-main"></div>'))


class TestRegistry:
    """Tests for the field-type registry."""

    def test_registered_types(self):
        assert EDITORS["image"] is ImageEditor
        for field_type in ("string", "text", "plain_text"):
            assert EDITORS[field_type] is PlainTextEditor

    def test_unknown_type(self):
        with pytest.raises(UnknownEditorError):
            create_editor("geofield")

    def test_attach_unknown_type(self, config, page):
        async def scenario():
            region, toolbar = page
            async with EditingSession(config, mock_client(backend_stub())) as session:
                with pytest.raises(UnknownEditorError):
                    session.attach(region, toolbar, field_type="geofield")

        asyncio.run(scenario())


class TestAttach:
    """Tests for EditingSession.attach."""

    def test_reads_field_id_from_markup(self, config, page):
        async def scenario():
            region, toolbar = page
            async with EditingSession(config, mock_client(backend_stub())) as session:
                editor = session.attach(region, toolbar)
                assert editor.field_id == FieldId.parse(FIELD_ID)
                assert editor.state == S.INACTIVE
                assert session.editor(FIELD_ID) is editor
                assert session.editor(FieldId.parse(FIELD_ID)) is editor

        asyncio.run(scenario())

    def test_missing_attribute(self, config):
        async def scenario():
            async with EditingSession(config, mock_client(backend_stub())) as session:
                with pytest.raises(ValueError):
                    session.attach(parse_element("<div><img></div>"), new_toolbar())

        asyncio.run(scenario())

    def test_attach_twice(self, config, page):
        async def scenario():
            region, toolbar = page
            async with EditingSession(config, mock_client(backend_stub())) as session:
                session.attach(region, toolbar)
                with pytest.raises(ValueError):
                    session.attach(region, toolbar)

        asyncio.run(scenario())

    def test_unknown_field(self, config, page):
        async def scenario():
            async with await open_session(config, mock_client(backend_stub()), page) as session:
                with pytest.raises(UnknownFieldError):
                    session.editor("node/9/field_image/en/full")

        asyncio.run(scenario())

    def test_fields_of_one_entity_share_entity_model(self, config, page):
        async def scenario():
            async with await open_session(config, mock_client(backend_stub()), page) as session:
                title = session.attach(parse_element(f'<h1 data-quickedit-field-id="{TITLE_ID}">Hello</h1>'), new_toolbar(), field_type="string")
                assert title.field_model.entity is session.editor(FIELD_ID).field_model.entity

        asyncio.run(scenario())


class TestCoordination:
    """Only one region is edited at a time."""

    def test_start_moves_fields_to_candidate(self, config, page):
        async def scenario():
            async with await open_session(config, mock_client(backend_stub()), page) as session:
                assert [editor.state for editor in session] == [S.CANDIDATE]
                assert session.active_editor is None

        asyncio.run(scenario())

    def test_highlight(self, config, page):
        async def scenario():
            async with await open_session(config, mock_client(backend_stub()), page) as session:
                session.highlight(FIELD_ID)
                assert session.editor(FIELD_ID).state == S.HIGHLIGHTED
                editor = await activate(session)
                assert editor.state == S.ACTIVE

        asyncio.run(scenario())

    def test_activating_another_region_cancels_the_first(self, config, page):
        async def scenario():
            region, _ = page
            other = parse_element(REGION_MARKUP.replace(FIELD_ID, SECOND_IMAGE_ID))
            upload = {"fid": 5, "html": "<img src='/f/5.jpg'>"}
            async with await open_session(config, mock_client(backend_stub(upload=upload)), page) as session:
                session.attach(other, new_toolbar())
                session.start()

                first = await activate(session)
                await first.receive_files([LocalFile("a.jpg", b"a")])
                assert first.state == S.CHANGED

                second = await activate(session, SECOND_IMAGE_ID)
                assert session.active_editor is second
                assert first.state == S.CANDIDATE
                assert inner_html(region) == '<img src="/files/old.jpg" alt="Old">'
                assert not has_class(region, templates.EDITING_CLASS)
                assert second.state == S.ACTIVE
                assert len(find_by_class(other, templates.DROPZONE_CLASS)) == 1

        asyncio.run(scenario())

    def test_activate_current_region_is_a_no_op(self, config, page):
        async def scenario():
            async with await open_session(config, mock_client(backend_stub()), page) as session:
                editor = await activate(session)
                epoch = editor.activation_epoch
                assert session.activate(FIELD_ID) is editor
                assert editor.activation_epoch == epoch
                assert editor.state == S.ACTIVE

        asyncio.run(scenario())

    def test_reactivate_after_saved(self, config, page):
        async def scenario():
            stub = backend_stub(save={"html": f'<div data-quickedit-field-id="{FIELD_ID}"><img src="/f/3.jpg"></div>'})
            async with await open_session(config, mock_client(stub), page) as session:
                editor = await activate(session)
                editor.field_model.set_state(S.CHANGED)
                session.save(FIELD_ID)
                await editor.save_task
                assert editor.state == S.SAVED

                await activate(session)
                assert editor.state == S.ACTIVE
                # The saved markup is what a later revert goes back to.
                assert editor.display.html == '<img src="/f/3.jpg">'

        asyncio.run(scenario())

    def test_cancel_reverts_and_returns_to_candidate(self, config, page):
        async def scenario():
            region, _ = page
            async with await open_session(config, mock_client(backend_stub()), page) as session:
                await activate(session)
                editor = session.cancel(FIELD_ID)
                assert editor.state == S.CANDIDATE
                assert inner_html(region) == '<img src="/files/old.jpg" alt="Old">'
                assert region.get("class") == "field"

        asyncio.run(scenario())

    def test_stop_returns_fields_to_inactive(self, config, page):
        async def scenario():
            region, _ = page
            session = await open_session(config, mock_client(backend_stub(upload={"fid": 1, "html": "<img>"})), page)
            editor = await activate(session)
            await editor.receive_files([LocalFile("a.jpg", b"a")])

            await session.stop()
            assert editor.state == S.INACTIVE
            assert inner_html(region) == '<img src="/files/old.jpg" alt="Old">'
            assert list(session) == []
            # Editors no longer follow their field.
            editor.field_model.set_state(S.CANDIDATE)
            assert find_by_class(region, templates.DROPZONE_CLASS) == []

        asyncio.run(scenario())

    def test_session_owned_client_is_closed(self, config):
        async def scenario():
            session = EditingSession(config)
            client = session.client
            assert client.base_url.host == "testserver"
            await session.stop()
            assert client.is_closed

        asyncio.run(scenario())

    def test_injected_client_is_left_open(self, config):
        async def scenario():
            client = mock_client(backend_stub())
            async with EditingSession(config, client):
                pass
            assert not client.is_closed
            await client.aclose()

        asyncio.run(scenario())


class TestPlainText:
    """Tests for the plain text editor."""

    def test_edit_and_save(self, config):
        async def scenario():
            element = parse_element(f'<h1 data-quickedit-field-id="{TITLE_ID}">Hello</h1>')
            payloads = []

            def save(request):
                payloads.append(json.loads(request.read()))
                return {"html": f'<h1 data-quickedit-field-id="{TITLE_ID}">Hello world</h1>'}

            async with EditingSession(config, mock_client(backend_stub(save=save))) as session:
                editor = session.attach(element, new_toolbar(), field_type="string")
                session.start()
                session.activate(TITLE_ID)
                await settle()

                assert editor.state == S.ACTIVE
                assert element.get("contenteditable") == "true"
                editor.enter_text("Hello world")
                assert editor.state == S.CHANGED

                session.save(TITLE_ID)
                await editor.save_task
                assert editor.state == S.SAVED
                assert element.text == "Hello world"

                session.activate(TITLE_ID)
                await settle()
                session.cancel(TITLE_ID)
                assert element.get("contenteditable") is None

            assert payloads == [{"value": "Hello world"}]

        asyncio.run(scenario())

    def test_ui_settings(self, config):
        async def scenario():
            element = parse_element(f'<h1 data-quickedit-field-id="{TITLE_ID}">Hello</h1>')
            async with EditingSession(config, mock_client(backend_stub())) as session:
                editor = session.attach(element, new_toolbar(), field_type="text")
                settings = editor.get_ui_settings()
                assert settings.padding is True
                assert settings.full_width_toolbar is False
                assert settings.unified_toolbar is True

        asyncio.run(scenario())

    def test_save_failure_without_list_shows_main_error(self, config):
        async def scenario():
            element = parse_element(f'<h1 data-quickedit-field-id="{TITLE_ID}">Hello</h1>')
            toolbar = new_toolbar()
            stub = backend_stub(save={"main_error": "Title is too long."})
            async with EditingSession(config, mock_client(stub)) as session:
                editor = session.attach(element, toolbar, field_type="string")
                session.start()
                session.activate(TITLE_ID)
                await settle()
                editor.enter_text("x" * 300)
                session.save(TITLE_ID)
                await editor.save_task

                assert editor.state == S.INVALID
                assert toolbar.error_messages() == ["Title is too long."]

        asyncio.run(scenario())

    def test_revert(self, config):
        async def scenario():
            element = parse_element(f'<h1 data-quickedit-field-id="{TITLE_ID}">Hello <em>there</em></h1>')
            async with EditingSession(config, mock_client(backend_stub())) as session:
                editor = session.attach(element, new_toolbar(), field_type="string")
                session.start()
                session.activate(TITLE_ID)
                await settle()
                editor.enter_text("Changed")
                session.cancel(TITLE_ID)

                assert inner_html(element) == "Hello <em>there</em>"
                assert editor.state == S.CANDIDATE

        asyncio.run(scenario())
