"""SQLAlchemy database models for the Notekeep server."""
import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from notekeep.config import config

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBEntry(Base):
    """One key/value pair.

    Values are JSON documents that the repositories encode and decode.
    """

    __tablename__ = "kv_entries"
    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.datetime.now(datetime.timezone.utc),
        onupdate=lambda: datetime.datetime.now(datetime.timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        """Return string representation of the entry."""
        return f"<Entry(key='{self.key}', bytes={len(self.value or '')})>"


def init_db(db_url: Optional[str] = None) -> Engine:
    """Create the engine and the key/value table.

    Applies WAL journaling so a crash mid-write never leaves a
    half-written value behind.
    """
    engine = create_engine(db_url or config.get_db_url(), pool_pre_ping=True)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine)
