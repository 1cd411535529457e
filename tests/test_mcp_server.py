# tests/test_mcp_server.py
"""Tests for the MCP server implementation."""
import json
import re
from unittest.mock import MagicMock, patch

import pytest

from notekeep.exceptions import ErrorCode, ValidationError
from notekeep.server.mcp_server import MAX_TITLE_LENGTH, NotekeepMcpServer


class TestMcpServer:
    """Tests for the NotekeepMcpServer tools, run against a real workspace."""

    @pytest.fixture(autouse=True)
    def server(self, workspace):
        """Create a server whose tool functions are captured by name."""
        self.registered_tools = {}
        self.mock_mcp = MagicMock()

        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                self.registered_tools[kwargs.get("name")] = func
                return func

            return tool_wrapper

        self.mock_mcp.tool = mock_tool_decorator
        with patch("notekeep.server.mcp_server.FastMCP", return_value=self.mock_mcp):
            self.server = NotekeepMcpServer(workspace=workspace)
        self.workspace = workspace
        yield self.server

    async def login(self):
        return await self.registered_tools["nk_register"](
            email="a@x.com", password="secret1", name="Ann"
        )

    async def create(self, **kwargs):
        result = await self.registered_tools["nk_create_note"](**kwargs)
        return re.search(r"ID: (\S+)", result).group(1)

    def test_all_tools_registered(self):
        assert set(self.registered_tools) == {
            "nk_register",
            "nk_login",
            "nk_logout",
            "nk_whoami",
            "nk_create_note",
            "nk_get_note",
            "nk_update_note",
            "nk_delete_note",
            "nk_restore_note",
            "nk_archive_note",
            "nk_pin_note",
            "nk_duplicate_note",
            "nk_attach_files",
            "nk_remove_attachment",
            "nk_list_notes",
            "nk_list_tags",
            "nk_metrics",
        }

    @pytest.mark.anyio
    async def test_register_login_logout(self):
        result = await self.login()
        assert result == "Account created successfully. Logged in as Ann <a@x.com>"
        assert self.registered_tools["nk_whoami"]().startswith("Logged in as Ann")

        assert self.registered_tools["nk_logout"]() == "Logged out"
        assert self.registered_tools["nk_whoami"]() == "Not logged in"

        result = await self.registered_tools["nk_login"](email="a@x.com", password="wrong")
        assert result == "Error: Invalid email or password"
        result = await self.registered_tools["nk_login"](email="a@x.com", password="secret1")
        assert result == "Logged in as Ann <a@x.com>"

    @pytest.mark.anyio
    async def test_register_errors(self):
        await self.login()
        result = await self.registered_tools["nk_register"](
            email="a@x.com", password="zzzzzz", name="B"
        )
        assert result == "Error: Email already exists"
        result = await self.registered_tools["nk_register"](
            email="c@x.com", password="123", name="C"
        )
        assert "at least 6 characters" in result

    def test_note_tools_require_login(self):
        assert self.registered_tools["nk_list_notes"]() == "Error: Please log in first"
        assert self.registered_tools["nk_get_note"](note_id="x") == "Error: Please log in first"
        assert self.registered_tools["nk_list_tags"]() == "Error: Please log in first"

    @pytest.mark.anyio
    async def test_create_and_get_note(self):
        await self.login()
        note_id = await self.create(
            title="Groceries", content="milk, eggs", color="Yellow", tags="home, food"
        )
        result = self.registered_tools["nk_get_note"](note_id=note_id)
        assert "# Groceries" in result
        assert "View: active" in result
        assert "Color: yellow" in result
        assert "Tags: home, food" in result
        assert "milk, eggs" in result

    @pytest.mark.anyio
    async def test_create_empty_note(self):
        await self.login()
        result = await self.registered_tools["nk_create_note"](title="", content="  ")
        assert result.startswith("Nothing to save")
        assert self.workspace.notes.notes == ()

    @pytest.mark.anyio
    async def test_create_note_invalid_input(self):
        await self.login()
        result = await self.registered_tools["nk_create_note"](title="x", color="neon")
        assert result.startswith("Error: Invalid color: neon")
        result = await self.registered_tools["nk_create_note"](
            title="x" * (MAX_TITLE_LENGTH + 1)
        )
        assert "Title exceeds maximum length" in result
        result = await self.registered_tools["nk_create_note"](
            title="x", file_paths=["/does/not/exist.png"]
        )
        assert result == "Error: File not found: /does/not/exist.png"

    @pytest.mark.anyio
    async def test_update_note(self):
        await self.login()
        note_id = await self.create(title="Draft", tags="a, b")
        result = self.registered_tools["nk_update_note"](note_id=note_id, title="Final", tags="")
        assert result == f"Note updated successfully: {note_id}"
        note = self.workspace.notes.get_note(note_id)
        assert note.title == "Final"
        assert note.tags == []
        result = self.registered_tools["nk_update_note"](note_id="missing", title="x")
        assert result == "Note not found: missing"

    @pytest.mark.anyio
    async def test_update_cannot_empty_note(self):
        await self.login()
        note_id = await self.create(title="Groceries", content="milk")
        result = self.registered_tools["nk_update_note"](note_id=note_id, title=" ", content="")
        assert result.startswith("Nothing to save")
        note = self.workspace.notes.get_note(note_id)
        assert (note.title, note.content) == ("Groceries", "milk")

    @pytest.mark.anyio
    async def test_two_click_delete_and_restore(self):
        await self.login()
        note_id = await self.create(title="Temp")
        delete = self.registered_tools["nk_delete_note"]
        assert delete(note_id=note_id) == f"Note moved to trash: {note_id}"
        assert self.registered_tools["nk_restore_note"](note_id=note_id) == f"Note restored: {note_id}"
        delete(note_id=note_id)
        assert delete(note_id=note_id) == f"Note deleted permanently: {note_id}"
        assert delete(note_id=note_id) == f"Note not found: {note_id}"

    @pytest.mark.anyio
    async def test_archive_pin_duplicate(self):
        await self.login()
        note_id = await self.create(title="Plan")
        assert self.registered_tools["nk_archive_note"](note_id=note_id) == f"Note archived: {note_id}"
        assert self.registered_tools["nk_archive_note"](note_id=note_id) == f"Note unarchived: {note_id}"
        assert self.registered_tools["nk_pin_note"](note_id=note_id) == f"Note pinned: {note_id}"
        result = self.registered_tools["nk_duplicate_note"](note_id=note_id)
        copy_id = result.rsplit(" ", 1)[1]
        assert self.workspace.notes.get_note(copy_id).title == "Plan (Copy)"
        assert self.registered_tools["nk_duplicate_note"](note_id="missing") == "Note not found: missing"

    @pytest.mark.anyio
    async def test_attachments(self, tmp_path):
        await self.login()
        image = tmp_path / "photo.png"
        image.write_bytes(b"\x89PNG\r\n")
        text = tmp_path / "readme.txt"
        text.write_text("hello")
        note_id = await self.create(title="Files", file_paths=[str(image)])
        assert len(self.workspace.notes.get_note(note_id).files) == 1

        result = await self.registered_tools["nk_attach_files"](
            note_id=note_id, file_paths=[str(image), str(text)]
        )
        assert result == f"Attached 1 file(s) to note {note_id}"

        note = self.workspace.notes.get_note(note_id)
        assert "Attachments (2):" in self.registered_tools["nk_get_note"](note_id=note_id)
        remove = self.registered_tools["nk_remove_attachment"]
        result = remove(note_id=note_id, attachment_id=note.files[0].id)
        assert result == f"Note {note_id} now has 1 attachment(s)"
        assert remove(note_id=note_id) == f"Note {note_id} now has 0 attachment(s)"

    @pytest.mark.anyio
    async def test_attach_path_with_comma(self, tmp_path):
        await self.login()
        image = tmp_path / "trip, day 1.png"
        image.write_bytes(b"\x89PNG\r\n")
        note_id = await self.create(title="Trip", file_paths=[str(image)])
        [attachment] = self.workspace.notes.get_note(note_id).files
        assert attachment.name == "trip, day 1.png"

    @pytest.mark.anyio
    async def test_list_notes(self):
        await self.login()
        first = await self.create(title="Alpha", content="eggs", tags="food")
        second = await self.create(title="beta")
        self.registered_tools["nk_pin_note"](note_id=first)
        list_notes = self.registered_tools["nk_list_notes"]

        result = list_notes(sort="title")
        assert result.startswith("Active notes, sorted by title (2):")
        assert result.index(first) < result.index(second)
        assert "- * Alpha" in result

        result = list_notes(search="EGGS")
        assert "matching 'EGGS'" in result
        assert second not in result

        assert "none found" in list_notes(search="", tag="nothing")
        result = list_notes(view="trash", tag="")
        assert result == "Trash notes, sorted by title: none found"

    def test_list_notes_rejects_bad_arguments(self):
        assert self.registered_tools["nk_list_notes"](view="starred").startswith("Error:")
        assert self.registered_tools["nk_list_notes"](sort="color").startswith("Error:")

    @pytest.mark.anyio
    async def test_list_tags(self):
        await self.login()
        note_id = await self.create(title="a", tags="work, ideas")
        await self.create(title="b", tags="work")
        self.registered_tools["nk_archive_note"](note_id=note_id)
        result = self.registered_tools["nk_list_tags"]()
        assert result == "Notes: active 1, archive 1, trash 0\nTags: #ideas, #work"

    def test_metrics_is_json(self):
        self.registered_tools["nk_whoami"]()
        data = json.loads(self.registered_tools["nk_metrics"]())
        assert "summary" in data
        assert "operations" in data

    def test_format_error_response(self):
        result = self.server.format_error_response(
            ValidationError("Bad field", field="x", code=ErrorCode.INVALID_VIEW)
        )
        assert result == "Error: Bad field"
        assert self.server.format_error_response(ValueError("boom")).startswith(
            "Error: Invalid input (ref: "
        )
        assert self.server.format_error_response(OSError("disk")).startswith(
            "Error: A file system error occurred"
        )
        assert self.server.format_error_response(RuntimeError("x")).startswith(
            "Error: An unexpected error occurred"
        )
