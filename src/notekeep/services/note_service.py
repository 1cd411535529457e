"""Service that owns one user's note collection and keeps it persisted."""

import logging
from typing import List, Optional, Sequence

from notekeep.exceptions import AuthenticationRequiredError
from notekeep.models.schema import (
    Attachment,
    Note,
    NoteColor,
    NoteDraft,
    NotePatch,
    ViewState,
)
from notekeep.services import lifecycle, query
from notekeep.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


class NoteService:
    """Applies lifecycle transitions to the open collection.

    The service holds the collection of exactly one identity at a time.
    Each change runs the pure transition from ``lifecycle`` and then
    writes the whole resulting collection back in one store write.
    """

    def __init__(self, repository: NoteRepository):
        self.repository = repository
        self._user_id: Optional[str] = None
        self._notes: lifecycle.Notes = ()

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_open(self) -> bool:
        return self._user_id is not None

    @property
    def notes(self) -> lifecycle.Notes:
        """The open collection, newest insertions first."""
        return self._notes

    def open(self, user_id: str) -> None:
        """Load the partition of ``user_id`` into memory."""
        self._user_id = user_id
        self._notes = tuple(self.repository.load(user_id))
        logger.info(f"Opened {len(self._notes)} notes for user {user_id}")

    def close(self) -> None:
        """Forget the in-memory collection. It is re-read on the next open()."""
        self._user_id = None
        self._notes = ()

    def _require_open(self, operation: str) -> str:
        if self._user_id is None:
            raise AuthenticationRequiredError(operation)
        return self._user_id

    def _commit(self, operation: str, notes: lifecycle.Notes) -> None:
        user_id = self._require_open(operation)
        if notes == self._notes:
            return
        self.repository.save(user_id, notes)
        self._notes = notes

    def get_note(self, note_id: str) -> Optional[Note]:
        self._require_open("get_note")
        return lifecycle.find(self._notes, note_id)

    def create_note(
        self,
        title: str = "",
        content: str = "",
        color: NoteColor = NoteColor.WHITE,
        tags: Optional[Sequence[str]] = None,
        files: Optional[Sequence[Attachment]] = None,
    ) -> Optional[Note]:
        """Create a note. Returns None when the draft was empty."""
        self._require_open("create_note")
        draft = NoteDraft(
            title=title,
            content=content,
            color=color,
            tags=list(tags or []),
            files=list(files or []),
        )
        notes, note = lifecycle.create(self._notes, draft)
        self._commit("create_note", notes)
        if note is not None:
            logger.info(f"Created note {note.id}")
        return note

    def update_note(
        self,
        note_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
        color: Optional[NoteColor] = None,
        tags: Optional[Sequence[str]] = None,
        files: Optional[Sequence[Attachment]] = None,
    ) -> Optional[Note]:
        """Update the given fields of a note. Returns the note afterwards."""
        self._require_open("update_note")
        patch = NotePatch(
            title=title,
            content=content,
            color=color,
            tags=list(tags) if tags is not None else None,
            files=list(files) if files is not None else None,
        )
        self._commit("update_note", lifecycle.update(self._notes, note_id, patch))
        return lifecycle.find(self._notes, note_id)

    def delete_note(self, note_id: str) -> Optional[Note]:
        """Trash a note, or purge it if it is already in the trash.

        Returns:
            The trashed note, or None once it has been purged (or never
            existed).
        """
        self._require_open("delete_note")
        self._commit("delete_note", lifecycle.set_deleted(self._notes, note_id))
        return lifecycle.find(self._notes, note_id)

    def soft_delete_note(self, note_id: str) -> Optional[Note]:
        self._require_open("soft_delete_note")
        self._commit("soft_delete_note", lifecycle.soft_delete(self._notes, note_id))
        return lifecycle.find(self._notes, note_id)

    def purge_note(self, note_id: str) -> None:
        self._require_open("purge_note")
        self._commit("purge_note", lifecycle.purge(self._notes, note_id))

    def toggle_archived(self, note_id: str) -> Optional[Note]:
        self._require_open("toggle_archived")
        self._commit("toggle_archived", lifecycle.toggle_archived(self._notes, note_id))
        return lifecycle.find(self._notes, note_id)

    def toggle_pinned(self, note_id: str) -> Optional[Note]:
        self._require_open("toggle_pinned")
        self._commit("toggle_pinned", lifecycle.toggle_pinned(self._notes, note_id))
        return lifecycle.find(self._notes, note_id)

    def restore_note(self, note_id: str) -> Optional[Note]:
        self._require_open("restore_note")
        self._commit("restore_note", lifecycle.restore(self._notes, note_id))
        return lifecycle.find(self._notes, note_id)

    def duplicate_note(self, note_id: str) -> Optional[Note]:
        self._require_open("duplicate_note")
        notes, copy = lifecycle.duplicate(self._notes, note_id)
        self._commit("duplicate_note", notes)
        return copy

    def add_attachments(
        self, note_id: str, files: Sequence[Attachment]
    ) -> Optional[Note]:
        self._require_open("add_attachments")
        self._commit(
            "add_attachments", lifecycle.add_attachments(self._notes, note_id, files)
        )
        return lifecycle.find(self._notes, note_id)

    def remove_attachment(self, note_id: str, attachment_id: str) -> Optional[Note]:
        self._require_open("remove_attachment")
        self._commit(
            "remove_attachment",
            lifecycle.remove_attachment(self._notes, note_id, attachment_id),
        )
        return lifecycle.find(self._notes, note_id)

    def clear_attachments(self, note_id: str) -> Optional[Note]:
        self._require_open("clear_attachments")
        self._commit(
            "clear_attachments", lifecycle.clear_attachments(self._notes, note_id)
        )
        return lifecycle.find(self._notes, note_id)

    def query(self, state: ViewState) -> List[Note]:
        """The visible notes for ``state``."""
        self._require_open("query")
        return query.derive_for(self._notes, state)
