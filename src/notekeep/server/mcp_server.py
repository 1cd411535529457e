"""MCP server implementation for Notekeep."""

import json
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from notekeep.config import config
from notekeep.exceptions import (
    AuthenticationRequiredError,
    ErrorCode,
    NotekeepError,
    ValidationError,
)
from notekeep.models.schema import Note, NoteColor
from notekeep.observability import metrics, timed_operation
from notekeep.services.attachments import AttachmentManager, FileInput
from notekeep.services.auth_service import validate_registration
from notekeep.services.query import all_tags, parse_sort_key, parse_view, view_counts, view_of
from notekeep.services.workspace import Workspace
from notekeep.utils import format_file_size, parse_tags

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 1_000_000  # 1 MB
PREVIEW_LENGTH = 80


def _validate_input_lengths(
    title: Optional[str] = None, content: Optional[str] = None
) -> None:
    """Validate input string lengths at the MCP boundary."""
    if title and len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title exceeds maximum length of {MAX_TITLE_LENGTH} characters",
            field="title",
        )
    if content and len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Content exceeds maximum length of {MAX_CONTENT_LENGTH} characters",
            field="content",
        )


def _parse_color(color: str) -> NoteColor:
    try:
        return NoteColor((color or "white").strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid color: {color}. Valid colors are: "
            f"{', '.join(c.value for c in NoteColor)}",
            field="color",
            value=color,
            code=ErrorCode.INVALID_COLOR,
        ) from None


def _load_files(
    manager: AttachmentManager, file_paths: Optional[List[str]]
) -> List[FileInput]:
    """Read the given paths, leaving out files over the size limit."""
    paths = []
    for raw in file_paths or []:
        path = Path(raw.strip()).expanduser()
        if not path.is_file():
            raise ValidationError(f"File not found: {raw}", field="file_paths", value=raw)
        paths.append(path)
    files = (manager.load(path) for path in paths)
    return [f for f in files if f is not None]


def _format_note(note: Note) -> str:
    """Full summary of a note."""
    result = f"# {note.title or 'Untitled'}\n"
    result += f"ID: {note.id}\n"
    result += f"View: {view_of(note).value}\n"
    result += f"Pinned: {'yes' if note.pinned else 'no'}\n"
    result += f"Color: {note.color.value}\n"
    result += f"Created: {note.created_at.isoformat()}\n"
    result += f"Updated: {note.updated_at.isoformat()}\n"
    if note.tags:
        result += f"Tags: {', '.join(note.tags)}\n"
    if note.files:
        result += f"Attachments ({len(note.files)}):\n"
        for f in note.files:
            result += f"- {f.name} [{f.mime_type}, {format_file_size(f.size)}] (ID: {f.id})\n"
    result += f"\n{note.content}\n"
    return result


def _format_note_line(note: Note) -> str:
    """One list entry per note."""
    marker = "* " if note.pinned else ""
    line = f"- {marker}{note.title or 'Untitled'} (ID: {note.id})"
    if note.tags:
        line += f" #{' #'.join(note.tags)}"
    preview = note.content.replace("\n", " ")
    if preview:
        if len(preview) > PREVIEW_LENGTH:
            preview = preview[:PREVIEW_LENGTH] + "..."
        line += f"\n  {preview}"
    return line


class NotekeepMcpServer:
    """MCP server for Notekeep."""

    def __init__(self, engine=None, workspace: Optional[Workspace] = None):
        """Initialize the MCP server.

        Args:
            engine: Pre-configured SQLAlchemy engine for the key/value store.
            workspace: Ready-made workspace; takes precedence over ``engine``.
        """
        self.mcp = FastMCP(
            config.server_name,
            instructions=(
                "Personal notes. Log in or register first; notes are private "
                "to each account."
            ),
        )
        self.workspace = workspace if workspace is not None else Workspace(engine=engine)
        self.initialize()
        self._register_tools()

    def initialize(self) -> None:
        """Pick up a persisted session, if there is one."""
        user = self.workspace.restore_session()
        if user is not None:
            logger.info(
                f"Notekeep MCP server {config.server_version} initialized "
                f"(session: {user.email})"
            )
        else:
            logger.info(
                f"Notekeep MCP server {config.server_version} initialized (no session)"
            )

    def run(self) -> None:
        self.mcp.run()

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Domain errors come back with their own message; anything else is
        logged in full and answered with a reference id only.
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotekeepError):
            logger.warning(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, (IOError, OSError)):
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""
        ws = self.workspace

        @self.mcp.tool(name="nk_register")
        async def nk_register(email: str, password: str, name: str) -> str:
            """Create an account and log into it.
            Args:
                email: Email address (must not be registered yet)
                password: Password, at least 6 characters
                name: Display name
            """
            with timed_operation("nk_register", email=email) as op:
                try:
                    validate_registration(email, password, name)
                    user = await ws.register(email, password, name)
                    op["user_id"] = user.id
                    return f"Account created successfully. Logged in as {user.name} <{user.email}>"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_login")
        async def nk_login(email: str, password: str) -> str:
            """Log in to an existing account.
            Args:
                email: Registered email address (exact match)
                password: Account password
            """
            with timed_operation("nk_login", email=email) as op:
                try:
                    user = await ws.login(email, password)
                    op["user_id"] = user.id
                    return f"Logged in as {user.name} <{user.email}>"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_logout")
        def nk_logout() -> str:
            """Log out and close the current account's notes."""
            with timed_operation("nk_logout"):
                try:
                    ws.logout()
                    return "Logged out"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_whoami")
        def nk_whoami() -> str:
            """Show the logged-in account."""
            user = ws.current_user
            if user is None:
                return "Not logged in"
            return f"Logged in as {user.name} <{user.email}> (ID: {user.id})"

        @self.mcp.tool(name="nk_create_note")
        async def nk_create_note(
            title: str = "",
            content: str = "",
            color: str = "white",
            tags: Optional[str] = None,
            file_paths: Optional[List[str]] = None,
        ) -> str:
            """Create a new note.
            Args:
                title: The title of the note
                content: The body of the note
                color: white, red, orange, yellow, green, blue, purple or pink
                tags: Comma-separated list of tags (optional)
                file_paths: Image/PDF paths to attach (optional, max 10 MB each)
            """
            with timed_operation("nk_create_note", title=title[:30]) as op:
                try:
                    _validate_input_lengths(title=title, content=content)
                    note = await ws.save_note(
                        title=title,
                        content=content,
                        color=_parse_color(color),
                        tags=parse_tags(tags),
                        files=_load_files(ws.attachments, file_paths),
                    )
                    if note is None:
                        return "Nothing to save: the note has no title, content or attachments"
                    op["note_id"] = note.id
                    return f"Note created successfully with ID: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_get_note")
        def nk_get_note(note_id: str) -> str:
            """Show a note with its metadata and attachments.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_get_note", note_id=note_id) as op:
                try:
                    note = ws.notes.get_note(str(note_id))
                    op["found"] = note is not None
                    if note is None:
                        return f"Note not found: {note_id}"
                    return _format_note(note)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_update_note")
        def nk_update_note(
            note_id: str,
            title: Optional[str] = None,
            content: Optional[str] = None,
            color: Optional[str] = None,
            tags: Optional[str] = None,
        ) -> str:
            """Edit a note. Only the fields given are changed.
            Args:
                note_id: The ID of the note
                title: New title (optional)
                content: New content (optional)
                color: New color (optional)
                tags: Comma-separated tags replacing the current ones (optional, "" clears)
            """
            with timed_operation("nk_update_note", note_id=note_id):
                try:
                    _validate_input_lengths(title=title, content=content)
                    before = ws.notes.get_note(str(note_id))
                    if before is None:
                        return f"Note not found: {note_id}"
                    note = ws.notes.update_note(
                        str(note_id),
                        title=title,
                        content=content,
                        color=_parse_color(color) if color is not None else None,
                        tags=parse_tags(tags) if tags is not None else None,
                    )
                    if note is before:
                        return "Nothing to save: the note would have no title, content or attachments"
                    return f"Note updated successfully: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_delete_note")
        def nk_delete_note(note_id: str) -> str:
            """Move a note to the trash, or delete it forever if already there.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_delete_note", note_id=note_id):
                try:
                    note_id = str(note_id)
                    if ws.notes.get_note(note_id) is None:
                        return f"Note not found: {note_id}"
                    if ws.notes.delete_note(note_id) is None:
                        return f"Note deleted permanently: {note_id}"
                    return f"Note moved to trash: {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_restore_note")
        def nk_restore_note(note_id: str) -> str:
            """Bring a trashed or archived note back to the main list.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_restore_note", note_id=note_id):
                try:
                    note = ws.notes.restore_note(str(note_id))
                    if note is None:
                        return f"Note not found: {note_id}"
                    return f"Note restored: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_archive_note")
        def nk_archive_note(note_id: str) -> str:
            """Archive a note, or unarchive it if it is archived.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_archive_note", note_id=note_id):
                try:
                    note = ws.notes.toggle_archived(str(note_id))
                    if note is None:
                        return f"Note not found: {note_id}"
                    state = "archived" if note.archived else "unarchived"
                    return f"Note {state}: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_pin_note")
        def nk_pin_note(note_id: str) -> str:
            """Pin a note to the top of lists, or unpin it.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_pin_note", note_id=note_id):
                try:
                    note = ws.notes.toggle_pinned(str(note_id))
                    if note is None:
                        return f"Note not found: {note_id}"
                    state = "pinned" if note.pinned else "unpinned"
                    return f"Note {state}: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_duplicate_note")
        def nk_duplicate_note(note_id: str) -> str:
            """Make a copy of a note.
            Args:
                note_id: The ID of the note to copy
            """
            with timed_operation("nk_duplicate_note", note_id=note_id) as op:
                try:
                    copy = ws.notes.duplicate_note(str(note_id))
                    if copy is None:
                        return f"Note not found: {note_id}"
                    op["copy_id"] = copy.id
                    return f"Note duplicated with ID: {copy.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_attach_files")
        async def nk_attach_files(note_id: str, file_paths: List[str]) -> str:
            """Attach images or PDFs to an existing note.
            Args:
                note_id: The ID of the note
                file_paths: Paths of the files to attach; other types and files over 10 MB are skipped
            """
            with timed_operation("nk_attach_files", note_id=note_id) as op:
                try:
                    note_id = str(note_id)
                    before = ws.notes.get_note(note_id)
                    if before is None:
                        return f"Note not found: {note_id}"
                    note = await ws.attach_files(note_id, _load_files(ws.attachments, file_paths))
                    added = len(note.files) - len(before.files)
                    op["attached"] = added
                    return f"Attached {added} file(s) to note {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_remove_attachment")
        def nk_remove_attachment(note_id: str, attachment_id: Optional[str] = None) -> str:
            """Remove one attachment from a note, or all of them.
            Args:
                note_id: The ID of the note
                attachment_id: The attachment to remove; omit to remove every attachment
            """
            with timed_operation("nk_remove_attachment", note_id=note_id):
                try:
                    note_id = str(note_id)
                    if attachment_id:
                        note = ws.notes.remove_attachment(note_id, attachment_id)
                    else:
                        note = ws.notes.clear_attachments(note_id)
                    if note is None:
                        return f"Note not found: {note_id}"
                    return f"Note {note_id} now has {len(note.files)} attachment(s)"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_list_notes")
        def nk_list_notes(
            view: Optional[str] = None,
            search: Optional[str] = None,
            tag: Optional[str] = None,
            sort: Optional[str] = None,
        ) -> str:
            """List notes. Filters given here stick until changed or logout.
            Args:
                view: active (default), archive or trash
                search: Case-insensitive text matched against title, content and tags ("" clears)
                tag: Show only notes with exactly this tag ("" clears)
                sort: updated (default), created or title; pinned notes always come first
            """
            with timed_operation("nk_list_notes", view=view, search=search) as op:
                try:
                    notes = ws.visible_notes(
                        view=parse_view(view) if view is not None else None,
                        search=search,
                        selected_tag=tag,
                        sort_key=parse_sort_key(sort) if sort is not None else None,
                    )
                    op["result_count"] = len(notes)
                    state = ws.view_state
                    header = f"{state.view.value.capitalize()} notes, sorted by {state.sort_key.value}"
                    if state.search:
                        header += f", matching '{state.search}'"
                    if state.selected_tag:
                        header += f", tagged #{state.selected_tag}"
                    if not notes:
                        return f"{header}: none found"
                    lines = [f"{header} ({len(notes)}):"]
                    lines.extend(_format_note_line(n) for n in notes)
                    return "\n".join(lines)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_list_tags")
        def nk_list_tags() -> str:
            """List every tag in use and how many notes each view holds."""
            with timed_operation("nk_list_tags") as op:
                try:
                    if not ws.notes.is_open:
                        raise AuthenticationRequiredError("nk_list_tags")
                    notes = ws.notes.notes
                    tags = all_tags(notes)
                    op["result_count"] = len(tags)
                    counts = view_counts(notes)
                    result = "Notes: " + ", ".join(
                        f"{view.value} {count}" for view, count in counts.items()
                    )
                    result += "\nTags: " + (", ".join(f"#{t}" for t in tags) if tags else "none")
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_metrics")
        def nk_metrics() -> str:
            """Report per-tool call counts and timings for this process."""
            return json.dumps(
                {"summary": metrics.get_summary(), "operations": metrics.get_metrics()},
                indent=2,
            )
