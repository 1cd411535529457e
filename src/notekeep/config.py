"""Configuration module for the Notekeep server."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notekeep import __version__

# Load environment variables from the project root .env file.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config lives alongside the data directory
_USER_ENV = Path.home() / ".notekeep" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

# 10 MiB, the largest attachment accepted
DEFAULT_MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024

SORT_KEYS = ("updated", "created", "title")


class NotekeepConfig(BaseModel):
    """Configuration for the Notekeep server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEKEEP_BASE_DIR", "."))
    )
    # Key/value store location
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEKEEP_DATABASE_PATH", "data/db/notekeep.db")
        )
    )
    # Directory for rotated log files (None means ~/.notekeep/logs)
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEKEEP_LOG_DIR")) if os.getenv("NOTEKEEP_LOG_DIR") else None
        )
    )
    # Simulated latency for login/register, in seconds
    auth_delay_seconds: float = Field(
        default_factory=lambda: float(os.getenv("NOTEKEEP_AUTH_DELAY", "0.5"))
    )
    min_password_length: int = Field(
        default_factory=lambda: int(os.getenv("NOTEKEEP_MIN_PASSWORD_LENGTH", "6"))
    )
    max_attachment_bytes: int = Field(
        default_factory=lambda: int(
            os.getenv(
                "NOTEKEEP_MAX_ATTACHMENT_BYTES", str(DEFAULT_MAX_ATTACHMENT_BYTES)
            )
        )
    )
    default_sort: str = Field(
        default_factory=lambda: os.getenv("NOTEKEEP_DEFAULT_SORT", "updated").lower()
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTEKEEP_SERVER_NAME", "notekeep"))
    server_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_limits(self) -> "NotekeepConfig":
        """Reject settings the services cannot work with."""
        if self.auth_delay_seconds < 0:
            raise ValueError("auth_delay_seconds must be >= 0")
        if self.min_password_length < 1:
            raise ValueError("min_password_length must be >= 1")
        if self.max_attachment_bytes < 1:
            raise ValueError("max_attachment_bytes must be >= 1")
        if self.default_sort not in SORT_KEYS:
            raise ValueError(
                f"default_sort must be one of {', '.join(SORT_KEYS)}, "
                f"got '{self.default_sort}'"
            )
        if self.auth_delay_seconds > 5:
            logger.warning(
                "auth_delay_seconds=%.1f will make every login noticeably slow",
                self.auth_delay_seconds,
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NotekeepConfig()
