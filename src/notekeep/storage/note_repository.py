"""Repository for per-user note collections."""
import json
import logging
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError as PydanticValidationError

from notekeep.models.schema import Attachment, Note
from notekeep.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

NOTES_KEY_PREFIX = "notes:"

# camelCase keys written by the browser version of the app
_LEGACY_NOTE_KEYS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "isArchived": "archived",
    "isDeleted": "deleted",
    "isPinned": "pinned",
}
_LEGACY_FILE_KEYS = {"type": "mime_type", "url": "data_url"}

_NOTE_FIELDS = set(Note.model_fields)
_ATTACHMENT_FIELDS = set(Attachment.model_fields)


def notes_key(user_id: str) -> str:
    """Store key holding the notes of one identity."""
    return f"{NOTES_KEY_PREFIX}{user_id}"


def _normalize_attachment(raw: Dict[str, Any]) -> Dict[str, Any]:
    record = {_LEGACY_FILE_KEYS.get(k, k): v for k, v in raw.items()}
    return {k: v for k, v in record.items() if k in _ATTACHMENT_FIELDS}


def normalize_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map a stored note record onto the current field names.

    Optional fields that older records lack (pinned, color, tags, files)
    are left out so the model defaults apply. Unknown keys are dropped.
    """
    record = {_LEGACY_NOTE_KEYS.get(k, k): v for k, v in raw.items()}
    record = {k: v for k, v in record.items() if k in _NOTE_FIELDS}
    for field in ("pinned", "color", "tags", "files"):
        if not record.get(field):
            record.pop(field, None)
    if isinstance(record.get("files"), list):
        record["files"] = [
            _normalize_attachment(f) if isinstance(f, dict) else f
            for f in record["files"]
        ]
    return record


def decode_notes(payload: str) -> List[Note]:
    """Decode a stored JSON document into notes.

    Records that do not form a valid note are logged and skipped; the
    rest of the collection is kept.

    Raises:
        ValueError: If the payload is not a JSON list.
    """
    data = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError(f"expected a list of notes, got {type(data).__name__}")
    notes = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping note record {index}: not an object")
            continue
        try:
            notes.append(Note.model_validate(normalize_record(raw)))
        except PydanticValidationError as e:
            logger.warning(
                f"Skipping note record {index} (id={raw.get('id')}): "
                f"{e.error_count()} invalid field(s)"
            )
    return notes


def encode_notes(notes: Sequence[Note]) -> str:
    """Encode notes as a JSON list with ISO-8601 timestamps."""
    return json.dumps([note.model_dump(mode="json") for note in notes])


class NoteRepository:
    """Loads and saves the whole note collection of one identity.

    The collection is the unit of persistence: every save rewrites it in
    full under ``notes:<user_id>``.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self, user_id: str) -> List[Note]:
        """Load a user's notes.

        A missing partition is an empty collection. A corrupt one is
        logged and also treated as empty, so the user can keep working.
        """
        key = notes_key(user_id)
        payload = self.store.get(key)
        if payload is None:
            return []
        try:
            notes = decode_notes(payload)
        except ValueError as e:
            logger.warning(
                f"Discarding unreadable note collection for user {user_id}: {e}"
            )
            return []
        logger.debug(f"Loaded {len(notes)} notes for user {user_id}")
        return notes

    def save(self, user_id: str, notes: Sequence[Note]) -> None:
        """Replace a user's stored notes with ``notes``."""
        self.store.set(notes_key(user_id), encode_notes(notes))
