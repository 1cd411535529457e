"""Repository for login credentials and the current session identity."""
import json
import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from notekeep.models.schema import Credential, User
from notekeep.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

USERS_KEY = "users"
SESSION_KEY = "currentUser"


class CredentialRepository:
    """Global credential list plus the single session record.

    Both live outside any per-user note partition.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_all(self) -> List[Credential]:
        """Return every stored credential (an unreadable list counts as empty)."""
        payload = self.store.get(USERS_KEY)
        if payload is None:
            return []
        try:
            data = json.loads(payload)
            return [Credential.model_validate(item) for item in data]
        except (ValueError, TypeError, PydanticValidationError) as e:
            logger.warning(f"Discarding unreadable credential list: {e}")
            return []

    def find_by_email(self, email: str) -> Optional[Credential]:
        """Exact, case-sensitive email lookup."""
        for credential in self.get_all():
            if credential.email == email:
                return credential
        return None

    def add(self, credential: Credential) -> None:
        """Append a credential and rewrite the list."""
        credentials = self.get_all()
        credentials.append(credential)
        self.store.set(
            USERS_KEY, json.dumps([c.model_dump(mode="json") for c in credentials])
        )

    def get_session(self) -> Optional[User]:
        """Return the persisted session identity, if any."""
        payload = self.store.get(SESSION_KEY)
        if payload is None:
            return None
        try:
            return User.model_validate_json(payload)
        except PydanticValidationError as e:
            logger.error(f"Error parsing stored user: {e}")
            return None

    def set_session(self, user: User) -> None:
        self.store.set(SESSION_KEY, user.model_dump_json())

    def clear_session(self) -> None:
        self.store.remove(SESSION_KEY)
