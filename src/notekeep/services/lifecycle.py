"""Note lifecycle transitions.

Every function here is pure: it takes the current collection and returns
a new one, never touching storage or shared state. ``now`` can be passed
in to pin timestamps.

An id that matches no note is a no-op. Ids are generated internally and
there is a single writer, so a miss is not worth surfacing.
"""

import datetime
import logging
from typing import Callable, Iterable, Optional, Sequence, Tuple

from notekeep.models.schema import (
    Attachment,
    Note,
    NoteDraft,
    NotePatch,
    generate_id,
    utc_now,
)

logger = logging.getLogger(__name__)

Notes = Tuple[Note, ...]

COPY_SUFFIX = " (Copy)"


def find(notes: Sequence[Note], note_id: str) -> Optional[Note]:
    """Return the note with ``note_id``, or None."""
    for note in notes:
        if note.id == note_id:
            return note
    return None


def _replace(
    notes: Sequence[Note], note_id: str, change: Callable[[Note], Note]
) -> Notes:
    """Apply ``change`` to the matching note, keeping collection order."""
    updated = []
    found = False
    for note in notes:
        if note.id == note_id:
            note = change(note)
            found = True
        updated.append(note)
    if not found:
        logger.debug(f"No note with id '{note_id}', nothing changed")
    return tuple(updated)


def create(
    notes: Sequence[Note], draft: NoteDraft, now: Optional[datetime.datetime] = None
) -> Tuple[Notes, Optional[Note]]:
    """Save a draft as a new note at the front of the collection.

    Returns:
        The new collection and the created note. A draft with no title,
        no content and no files is dropped: the collection comes back
        unchanged together with None.
    """
    if draft.is_empty():
        logger.debug("Ignoring empty draft")
        return tuple(notes), None
    now = now or utc_now()
    note = Note(
        id=generate_id(),
        title=draft.title,
        content=draft.content,
        created_at=now,
        updated_at=now,
        color=draft.color,
        tags=list(draft.tags),
        files=list(draft.files),
    )
    return (note, *notes), note


def update(
    notes: Sequence[Note],
    note_id: str,
    patch: NotePatch,
    now: Optional[datetime.datetime] = None,
) -> Notes:
    """Merge the fields set on ``patch`` into a note and bump updated_at.

    An edit that would leave the note with no title, no content and no
    files is dropped, the same way create() drops an empty draft.
    """
    note = find(notes, note_id)
    if note is None:
        logger.debug(f"No note with id '{note_id}', nothing changed")
        return tuple(notes)
    changes = patch.model_dump(exclude_unset=True, exclude_none=True)
    # model_dump turns attachments into dicts; keep the models
    if patch.files is not None:
        changes["files"] = list(patch.files)
    merged = NoteDraft(
        title=changes.get("title", note.title),
        content=changes.get("content", note.content),
        files=changes.get("files", note.files),
    )
    if merged.is_empty():
        logger.debug(f"Ignoring edit that would empty note '{note_id}'")
        return tuple(notes)
    changes["updated_at"] = now or utc_now()
    return _replace(notes, note_id, lambda n: n.model_copy(update=changes))


def soft_delete(notes: Sequence[Note], note_id: str) -> Notes:
    """Move a note to the trash. Reversible through restore()."""
    return _replace(notes, note_id, lambda n: n.model_copy(update={"deleted": True}))


def purge(notes: Sequence[Note], note_id: str) -> Notes:
    """Remove a note permanently."""
    remaining = tuple(n for n in notes if n.id != note_id)
    if len(remaining) == len(notes):
        logger.debug(f"No note with id '{note_id}', nothing purged")
    return remaining


def set_deleted(notes: Sequence[Note], note_id: str) -> Notes:
    """Delete a note in two stages.

    The first call trashes the note; calling it again on a trashed note
    removes it for good.
    """
    note = find(notes, note_id)
    if note is None:
        logger.debug(f"No note with id '{note_id}', nothing deleted")
        return tuple(notes)
    if note.deleted:
        return purge(notes, note_id)
    return soft_delete(notes, note_id)


def toggle_archived(notes: Sequence[Note], note_id: str) -> Notes:
    """Flip the archived flag. updated_at is left as is."""
    return _replace(
        notes, note_id, lambda n: n.model_copy(update={"archived": not n.archived})
    )


def toggle_pinned(
    notes: Sequence[Note], note_id: str, now: Optional[datetime.datetime] = None
) -> Notes:
    """Flip the pinned flag and bump updated_at."""
    now = now or utc_now()
    return _replace(
        notes,
        note_id,
        lambda n: n.model_copy(update={"pinned": not n.pinned, "updated_at": now}),
    )


def restore(notes: Sequence[Note], note_id: str) -> Notes:
    """Bring a note back to the active view, whatever its prior state."""
    return _replace(
        notes,
        note_id,
        lambda n: n.model_copy(update={"deleted": False, "archived": False}),
    )


def duplicate(
    notes: Sequence[Note], note_id: str, now: Optional[datetime.datetime] = None
) -> Tuple[Notes, Optional[Note]]:
    """Copy a note to the front of the collection.

    The copy gets a fresh id, fresh timestamps, a " (Copy)" title suffix,
    its own attachment ids, and is never in the trash. Other flags carry
    over.
    """
    source = find(notes, note_id)
    if source is None:
        logger.debug(f"No note with id '{note_id}', nothing duplicated")
        return tuple(notes), None
    now = now or utc_now()
    copy = source.model_copy(
        update={
            "id": generate_id(),
            "title": source.title + COPY_SUFFIX,
            "created_at": now,
            "updated_at": now,
            "deleted": False,
            "tags": list(source.tags),
            "files": [f.model_copy(update={"id": generate_id()}) for f in source.files],
        }
    )
    return (copy, *notes), copy


def add_attachments(
    notes: Sequence[Note],
    note_id: str,
    files: Iterable[Attachment],
    now: Optional[datetime.datetime] = None,
) -> Notes:
    """Append attachments to a note, keeping their order."""
    files = list(files)
    if not files:
        return tuple(notes)
    now = now or utc_now()
    return _replace(
        notes,
        note_id,
        lambda n: n.model_copy(update={"files": [*n.files, *files], "updated_at": now}),
    )


def remove_attachment(notes: Sequence[Note], note_id: str, attachment_id: str) -> Notes:
    """Drop one attachment from a note."""
    note = find(notes, note_id)
    if note is None or note.get_attachment(attachment_id) is None:
        logger.debug(f"No attachment '{attachment_id}' on note '{note_id}'")
        return tuple(notes)
    remaining = [f for f in note.files if f.id != attachment_id]
    return _replace(notes, note_id, lambda n: n.model_copy(update={"files": remaining}))


def clear_attachments(notes: Sequence[Note], note_id: str) -> Notes:
    """Drop every attachment of a note."""
    return _replace(notes, note_id, lambda n: n.model_copy(update={"files": []}))
