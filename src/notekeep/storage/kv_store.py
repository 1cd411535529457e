"""Durable key/value store backed by SQLite."""
import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from notekeep.exceptions import ErrorCode, StorageError
from notekeep.models.db_models import DBEntry, get_session_factory

logger = logging.getLogger(__name__)


class KeyValueStore:
    """String-keyed store of text values.

    Every write replaces the whole value for a key inside one transaction,
    which is what makes a full-collection write atomic.
    """

    def __init__(self, engine: Optional[Engine] = None):
        """Initialize the store.

        Args:
            engine: Pre-configured SQLAlchemy engine. A default one is
                created from the global config when omitted.
        """
        self.session_factory = get_session_factory(engine)

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None."""
        try:
            with self.session_factory() as session:
                return session.scalar(select(DBEntry.value).where(DBEntry.key == key))
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to read from store",
                operation="get",
                key=key,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        try:
            with self.session_factory() as session:
                entry = session.get(DBEntry, key)
                if entry is None:
                    session.add(DBEntry(key=key, value=value))
                else:
                    entry.value = value
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to write to store",
                operation="set",
                key=key,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        logger.debug(f"Stored {len(value)} chars under '{key}'")

    def remove(self, key: str) -> bool:
        """Delete ``key``. Returns True if something was removed."""
        try:
            with self.session_factory() as session:
                result = session.execute(delete(DBEntry).where(DBEntry.key == key))
                session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to delete from store",
                operation="remove",
                key=key,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

