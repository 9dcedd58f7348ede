"""Data models for the notekeep collection manager."""

import datetime
import os
import threading
from datetime import timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def now_ms() -> int:
    """Current time as integer epoch milliseconds, the stored timestamp format."""
    return int(utc_now().timestamp() * 1000)


def from_ms(timestamp: int) -> datetime.datetime:
    """Convert stored epoch milliseconds back to an aware UTC datetime."""
    return datetime.datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)


# Thread-safe counter for uniqueness (seeded from PID for cross-process safety)
_id_lock = threading.Lock()
_last_timestamp = 0
_counter = (os.getpid() * 7) % 0x10000


def generate_id() -> str:
    """Generate a 24 character hex id that sorts by creation time.

    Layout: 13 hex digits of epoch microseconds, 4 hex digits of a
    per-microsecond counter and 7 hex digits of the process id.
    """
    global _last_timestamp, _counter

    with _id_lock:
        current = int(utc_now().timestamp() * 1_000_000)
        if current == _last_timestamp:
            _counter = (_counter + 1) % 0x10000
        else:
            _last_timestamp = current
            _counter = (os.getpid() * 7) % 0x10000
        return f"{current:013x}{_counter:04x}{os.getpid() % 0x10000000:07x}"


class NotebookRef(BaseModel):
    """A note's membership in one notebook, listing the topics it is filed under."""

    id: str = Field(..., description="Notebook ID")
    topics: List[str] = Field(default_factory=list, description="Topic IDs")

    model_config = {"extra": "ignore"}


class Note(BaseModel):
    """Canonical shape of a note metadata record.

    The body lives in the content store; ``content_id`` points at it.
    Unknown keys are dropped so a caller cannot pollute stored records.
    """

    id: str = Field(default_factory=generate_id, description="Unique ID of the note")
    content_id: Optional[str] = Field(default=None, description="Content store ID")
    type: Literal["note"] = "note"
    title: str = Field(default="", description="Derived or explicit title")
    headline: str = Field(default="", description="Derived preview line")
    pinned: bool = False
    locked: bool = False
    favorite: bool = False
    conflicted: bool = False
    notebooks: Optional[List[NotebookRef]] = Field(
        default=None, description="Notebook/topic memberships, None when unfiled"
    )
    color: Optional[str] = Field(default=None, description="Color label")
    tags: List[str] = Field(default_factory=list, description="Tag labels")
    date_created: int = Field(default_factory=now_ms, description="Epoch ms")
    date_edited: int = Field(default_factory=now_ms, description="Epoch ms")

    model_config = {"extra": "ignore"}

    @field_validator("pinned", "locked", "favorite", "conflicted", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        """Coerce any truthy/falsy flag value to a strict boolean."""
        return bool(v)

    @field_validator("title", "headline", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> str:
        return v or ""

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v: Any) -> List[Any]:
        """Trim tags, dropping blank and repeated ones."""
        if not v:
            return []
        if isinstance(v, str):
            v = [v]
        tags: List[Any] = []
        for tag in v:
            if isinstance(tag, str):
                tag = tag.strip()
                if not tag:
                    continue
            if tag not in tags:
                tags.append(tag)
        return tags

    @field_validator("notebooks", mode="before")
    @classmethod
    def drop_empty_notebooks(cls, v: Any) -> Optional[List[Any]]:
        """An empty membership list means the same as no membership."""
        return v or None

    @field_validator("color", mode="before")
    @classmethod
    def blank_color(cls, v: Any) -> Optional[Any]:
        if isinstance(v, str):
            v = v.strip()
        return v or None

    @field_validator("date_created", "date_edited", mode="before")
    @classmethod
    def default_timestamp(cls, v: Any) -> int:
        return now_ms() if v is None else v

    def to_record(self) -> Dict[str, Any]:
        """Dump to the stored dict; ``notebooks`` is omitted rather than null."""
        record = self.model_dump()
        if record["notebooks"] is None:
            del record["notebooks"]
        return record


# Keys a local edit may merge into a stored note
NOTE_FIELDS = tuple(Note.model_fields)


class ContentPayload(BaseModel):
    """Body supplied alongside a note in ``NoteCollection.add``."""

    type: Optional[str] = None
    data: Any = None
    conflicted: bool = False
    resolved: bool = False

    model_config = {"extra": "ignore"}

    @field_validator("conflicted", "resolved", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return bool(v)


class Content(BaseModel):
    """A stored note body."""

    id: str = Field(default_factory=generate_id, description="Content ID")
    note_id: str = Field(..., description="Owning note ID")
    type: str = Field(..., description="Content type tag, e.g. 'tiptap'")
    data: Any = Field(..., description="Type-specific body payload")
    conflicted: bool = False
    resolved: bool = False
    date_edited: int = Field(default_factory=now_ms, description="Epoch ms")

    model_config = {"extra": "ignore"}


class Destination(BaseModel):
    """Target of ``NoteCollection.move``: a topic inside a notebook."""

    id: str = Field(..., min_length=1, description="Notebook ID")
    topic: str = Field(..., min_length=1, description="Topic ID")

    model_config = {"extra": "ignore", "frozen": True}
