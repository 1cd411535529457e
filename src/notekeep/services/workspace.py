"""Application state tying authentication, notes and view state together."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.engine import Engine

from notekeep.config import config
from notekeep.exceptions import AuthenticationRequiredError
from notekeep.models.schema import (
    Note,
    NoteColor,
    SortKey,
    User,
    View,
    ViewState,
)
from notekeep.services.attachments import AttachmentManager, FileInput
from notekeep.services.auth_service import AuthGate
from notekeep.services.note_service import NoteService
from notekeep.storage.credential_repository import CredentialRepository
from notekeep.storage.kv_store import KeyValueStore
from notekeep.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


def default_view_state() -> ViewState:
    return ViewState(sort_key=SortKey(config.default_sort))


class Workspace:
    """Everything one user session needs, owned in one place.

    The auth gate decides whose notes are open: a successful login or
    registration opens that identity's partition, and logout closes it and
    resets the view state.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        engine: Optional[Engine] = None,
        auth_delay: Optional[float] = None,
        attachment_manager: Optional[AttachmentManager] = None,
    ):
        """Initialize the workspace.

        Args:
            store: Backing key/value store. Built from ``engine`` if None.
            engine: SQLAlchemy engine for a new store. Only used when
                ``store`` is None.
            auth_delay: Simulated login latency override (seconds).
            attachment_manager: Attachment validator/encoder override.
        """
        self.store = store if store is not None else KeyValueStore(engine=engine)
        self.auth = AuthGate(CredentialRepository(self.store), delay=auth_delay)
        self.notes = NoteService(NoteRepository(self.store))
        self.attachments = attachment_manager or AttachmentManager()
        self.view_state = default_view_state()

    @property
    def current_user(self) -> Optional[User]:
        return self.auth.current_user

    def restore_session(self) -> Optional[User]:
        """Reopen the notes of a session persisted by an earlier run."""
        user = self.auth.restore_session()
        if user is not None:
            self.notes.open(user.id)
        return user

    async def login(self, email: str, password: str) -> User:
        user = await self.auth.login(email, password)
        self._switch_to(user)
        return user

    async def register(self, email: str, password: str, name: str) -> User:
        user = await self.auth.register(email, password, name)
        self._switch_to(user)
        return user

    def _switch_to(self, user: User) -> None:
        self.notes.close()
        self.notes.open(user.id)
        self.view_state = default_view_state()

    def logout(self) -> None:
        self.auth.logout()
        self.notes.close()
        self.view_state = default_view_state()

    def _require_user(self, operation: str) -> User:
        user = self.auth.current_user
        if user is None or not self.auth.is_authenticated:
            raise AuthenticationRequiredError(operation)
        return user

    async def save_note(
        self,
        title: str = "",
        content: str = "",
        color: NoteColor = NoteColor.WHITE,
        tags: Optional[Sequence[str]] = None,
        files: Sequence[FileInput] = (),
    ) -> Optional[Note]:
        """Encode the accepted files and create a note from the draft."""
        self._require_user("save_note")
        attachments = await self.attachments.encode_all(files)
        return self.notes.create_note(
            title=title, content=content, color=color, tags=tags, files=attachments
        )

    async def attach_files(
        self, note_id: str, files: Sequence[FileInput]
    ) -> Optional[Note]:
        """Encode the accepted files and append them to an existing note."""
        self._require_user("attach_files")
        attachments = await self.attachments.encode_all(files)
        return self.notes.add_attachments(note_id, attachments)

    def visible_notes(
        self,
        view: Optional[View] = None,
        search: Optional[str] = None,
        selected_tag: Optional[str] = None,
        sort_key: Optional[SortKey] = None,
    ) -> List[Note]:
        """Update whichever view-state fields are given, then derive the list."""
        self._require_user("visible_notes")
        if view is not None:
            self.view_state.view = view
        if search is not None:
            self.view_state.search = search
        if selected_tag is not None:
            self.view_state.selected_tag = selected_tag
        if sort_key is not None:
            self.view_state.sort_key = sort_key
        return self.notes.query(self.view_state)
