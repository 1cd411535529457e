"""Simulated authentication against locally stored credentials."""

import asyncio
import logging
from enum import Enum
from typing import Optional

from notekeep.config import config
from notekeep.exceptions import (
    DuplicateEmailError,
    ErrorCode,
    InvalidCredentialsError,
    ValidationError,
)
from notekeep.models.schema import Credential, User
from notekeep.storage.credential_repository import CredentialRepository

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    """Where the gate is in the login flow."""

    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def validate_password(password: str, min_length: Optional[int] = None) -> str:
    """Check a password at the input boundary, before it reaches the gate."""
    min_length = min_length if min_length is not None else config.min_password_length
    if len(password) < min_length:
        raise ValidationError(
            f"Password must be at least {min_length} characters long",
            field="password",
            code=ErrorCode.PASSWORD_TOO_SHORT,
        )
    return password


def validate_registration(email: str, password: str, name: str) -> None:
    """Boundary checks for the registration form."""
    if not name.strip():
        raise ValidationError(
            "Please enter your name", field="name", code=ErrorCode.NAME_REQUIRED
        )
    if not email.strip():
        raise ValidationError("Please enter your email", field="email")
    validate_password(password)


class AuthGate:
    """Owns credentials and the current session identity.

    Login and register suspend for ``delay`` seconds to mimic a network
    round trip. Neither can be cancelled once started.

    Emails are compared exactly, case included, both when checking for
    duplicates and when logging in.
    """

    def __init__(self, repository: CredentialRepository, delay: Optional[float] = None):
        self.repository = repository
        self.delay = delay if delay is not None else config.auth_delay_seconds
        self._state = AuthState.ANONYMOUS
        self._user: Optional[User] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def current_user(self) -> Optional[User]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._state is AuthState.AUTHENTICATED

    def restore_session(self) -> Optional[User]:
        """Pick up a session persisted by an earlier run."""
        user = self.repository.get_session()
        if user is not None:
            self._user = user
            self._state = AuthState.AUTHENTICATED
            logger.info(f"Restored session for {user.email}")
        return user

    def _establish(self, user: User) -> User:
        self.repository.set_session(user)
        self._user = user
        self._state = AuthState.AUTHENTICATED
        return user

    async def login(self, email: str, password: str) -> User:
        """Log in with an exact email/password match.

        Raises:
            InvalidCredentialsError: If no stored credential matches.
        """
        previous = self._state
        self._state = AuthState.AUTHENTICATING
        try:
            await asyncio.sleep(self.delay)
            credential = self.repository.find_by_email(email)
            if credential is None or credential.password != password:
                raise InvalidCredentialsError(email)
        except Exception:
            self._state = previous
            raise
        logger.info(f"User {email} logged in")
        return self._establish(credential.to_user())

    async def register(self, email: str, password: str, name: str) -> User:
        """Create an account and log straight into it.

        Raises:
            DuplicateEmailError: If the email is already registered.
        """
        previous = self._state
        self._state = AuthState.AUTHENTICATING
        try:
            await asyncio.sleep(self.delay)
            if self.repository.find_by_email(email) is not None:
                raise DuplicateEmailError(email)
            credential = Credential(email=email, password=password, name=name)
            self.repository.add(credential)
        except Exception:
            self._state = previous
            raise
        logger.info(f"Registered user {email}")
        return self._establish(credential.to_user())

    def logout(self) -> None:
        """End the session and forget the persisted identity."""
        if self._user is not None:
            logger.info(f"User {self._user.email} logged out")
        self.repository.clear_session()
        self._user = None
        self._state = AuthState.ANONYMOUS
