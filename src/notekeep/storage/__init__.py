"""Storage layer for the Notekeep server."""

from notekeep.storage.credential_repository import CredentialRepository
from notekeep.storage.kv_store import KeyValueStore
from notekeep.storage.note_repository import NoteRepository

__all__ = [
    "KeyValueStore",
    "NoteRepository",
    "CredentialRepository",
]
