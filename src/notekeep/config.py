"""Configuration module for the notekeep collection manager."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, lives alongside the database
_USER_ENV = Path.home() / ".notekeep" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

SORT_DIRECTIONS = ("asc", "desc")


class NotekeepConfig(BaseModel):
    """Configuration for the note collection."""

    # Base directory for relative paths
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEKEEP_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEKEEP_DATABASE_PATH", "data/db/notekeep.db")
        )
    )
    # When True the SQL item store runs on an in-memory SQLite database
    in_memory_db: bool = Field(
        default_factory=lambda: os.getenv("NOTEKEEP_IN_MEMORY_DB", "false").lower()
        in ("true", "1", "yes")
    )
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEKEEP_LOG_DIR"))
            if os.getenv("NOTEKEEP_LOG_DIR")
            else None
        )
    )
    # Width of the "Recent" and "Last week" buckets of the default grouping
    recent_days: int = Field(
        default_factory=lambda: int(os.getenv("NOTEKEEP_RECENT_DAYS", "7"))
    )
    # Maximum headline length derived from note content
    headline_length: int = Field(
        default_factory=lambda: int(os.getenv("NOTEKEEP_HEADLINE_LENGTH", "150"))
    )
    # Snapshots older than this are purged by Trash.cleanup()
    trash_retention_days: int = Field(
        default_factory=lambda: int(
            os.getenv("NOTEKEEP_TRASH_RETENTION_DAYS", "7")
        )
    )
    default_group_sort: str = Field(
        default_factory=lambda: os.getenv("NOTEKEEP_DEFAULT_GROUP_SORT", "desc")
    )

    @model_validator(mode="after")
    def _validate_limits(self) -> "NotekeepConfig":
        """Reject day counts and sort directions the collection cannot use."""
        if self.recent_days < 1:
            raise ValueError("recent_days must be >= 1")
        if self.trash_retention_days < 1:
            raise ValueError("trash_retention_days must be >= 1")
        if self.headline_length < 1:
            raise ValueError("headline_length must be >= 1")
        if self.default_group_sort not in SORT_DIRECTIONS:
            raise ValueError(
                f"default_group_sort must be one of {SORT_DIRECTIONS}, "
                f"got {self.default_group_sort!r}"
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        if self.in_memory_db:
            return "sqlite://"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NotekeepConfig()
