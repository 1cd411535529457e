"""Data models for the Notekeep server."""

import datetime
import itertools
import threading
from datetime import timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: datetime.datetime) -> datetime.datetime:
    """Treat naive datetimes (older saved records) as UTC."""
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


_id_lock = threading.Lock()
_id_counter = itertools.count()


def generate_id() -> str:
    """Generate a unique, sortable identifier.

    Returns:
        A string in format "YYYYMMDDTHHMMSSffffffNNNN": the UTC timestamp
        down to microseconds followed by a 4-digit rolling counter, so two
        ids minted in the same microsecond still differ.
    """
    with _id_lock:
        now = utc_now()
        count = next(_id_counter) % 10_000
    return f"{now.strftime('%Y%m%dT%H%M%S')}{now.microsecond:06d}{count:04d}"


class NoteColor(str, Enum):
    """Background colors a note can carry."""

    WHITE = "white"
    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    PINK = "pink"


class View(str, Enum):
    """Computed partitions of the note collection."""

    ACTIVE = "active"
    ARCHIVE = "archive"
    TRASH = "trash"


class SortKey(str, Enum):
    """Secondary sort keys (pinned notes always come first)."""

    UPDATED = "updated"  # Last updated, newest first
    CREATED = "created"  # Created, newest first
    TITLE = "title"  # Title, ascending


class Attachment(BaseModel):
    """A file embedded in a note as a data URL."""

    id: str = Field(default_factory=generate_id, description="Attachment ID")
    name: str = Field(..., description="Display name of the file")
    mime_type: str = Field(..., description="MIME type of the file")
    data_url: str = Field(..., description="Self-contained data: URL payload")
    size: int = Field(..., ge=0, description="Size of the original file in bytes")

    model_config = {"frozen": True, "extra": "forbid"}


class Note(BaseModel):
    """A note record.

    Notes are immutable values; lifecycle operations return updated copies.
    Which view a note belongs to is derived from ``archived`` and
    ``deleted`` and never stored.
    """

    id: str = Field(default_factory=generate_id, description="Unique ID of the note")
    title: str = Field(default="", description="Title of the note")
    content: str = Field(default="", description="Content of the note")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last updated (UTC)"
    )
    archived: bool = False
    deleted: bool = False
    pinned: bool = False
    color: NoteColor = NoteColor.WHITE
    tags: List[str] = Field(default_factory=list)
    files: List[Attachment] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)

    @model_validator(mode="after")
    def validate_ordering(self) -> "Note":
        """updated_at can never precede created_at."""
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be earlier than created_at")
        return self

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def get_attachment(self, attachment_id: str) -> Optional[Attachment]:
        for attachment in self.files:
            if attachment.id == attachment_id:
                return attachment
        return None


class NoteDraft(BaseModel):
    """Editor buffer for a note that has not been saved yet."""

    title: str = ""
    content: str = ""
    color: NoteColor = NoteColor.WHITE
    tags: List[str] = Field(default_factory=list)
    files: List[Attachment] = Field(default_factory=list)

    def is_empty(self) -> bool:
        """True when there is nothing worth saving."""
        return not self.title.strip() and not self.content.strip() and not self.files


class NotePatch(BaseModel):
    """Partial update for an existing note. Unset fields are left alone."""

    title: Optional[str] = None
    content: Optional[str] = None
    color: Optional[NoteColor] = None
    tags: Optional[List[str]] = None
    files: Optional[List[Attachment]] = None


class User(BaseModel):
    """The identity of an authenticated session."""

    id: str = Field(default_factory=generate_id)
    email: str
    name: str

    model_config = {"frozen": True}


class Credential(BaseModel):
    """Stored login record.

    The password is kept in cleartext. This mirrors the reference
    behavior and must be replaced by a salted hash before real use.
    """

    id: str = Field(default_factory=generate_id)
    email: str
    password: str
    name: str

    model_config = {"frozen": True}

    def to_user(self) -> User:
        return User(id=self.id, email=self.email, name=self.name)


class ViewState(BaseModel):
    """What the user is currently looking at. Never persisted."""

    view: View = View.ACTIVE
    search: str = ""
    selected_tag: str = ""
    sort_key: SortKey = SortKey.UPDATED

    model_config = {"validate_assignment": True}
