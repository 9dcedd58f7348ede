"""Fakes for exercising failure paths and notifications.

Design principles:
- Never mock the item store wholesale; wrap the real in-memory store
- Failures are injected at a named operation and are deterministic
- Inspectable: tests read back exactly what was published or attempted
"""
from typing import Any, List, Optional, Tuple

from notekeep.events import NOTES_REMOVE_EMPTY_NOTE, EventChannel
from notekeep.storage.item_store import MemoryItemStore


class RecordingPublisher:
    """Collects published events in order."""

    def __init__(self, event_names=(NOTES_REMOVE_EMPTY_NOTE,)) -> None:
        self.event_names = event_names
        self.events: List[Tuple[str, Any]] = []

    def attach(self, channel: EventChannel) -> None:
        for name in self.event_names:
            channel.subscribe(name, lambda payload, name=name: self.events.append((name, payload)))

    def __call__(self, event_name: str, payload: Any = None) -> None:
        self.events.append((event_name, payload))


class FlakyItemStore(MemoryItemStore):
    """In-memory store that raises on a chosen operation once armed.

    ``fail_on`` is one of "get", "put", "delete", "list". The error is
    raised on every call after ``arm()`` until ``disarm()``.
    """

    def __init__(self, name: str = "items", fail_on: str = "put",
                 error: Optional[Exception] = None) -> None:
        super().__init__(name)
        self.fail_on = fail_on
        self.error = error or OSError("disk full")
        self.armed = False
        self.attempts = 0

    def arm(self) -> None:
        self.armed = True

    def disarm(self) -> None:
        self.armed = False

    def _maybe_fail(self, operation: str) -> None:
        if self.armed and operation == self.fail_on:
            self.attempts += 1
            raise self.error

    async def get(self, item_id):
        self._maybe_fail("get")
        return await super().get(item_id)

    async def put(self, record):
        self._maybe_fail("put")
        return await super().put(record)

    async def delete(self, item_id):
        self._maybe_fail("delete")
        return await super().delete(item_id)

    async def list(self):
        self._maybe_fail("list")
        return await super().list()


def tiptap(html: str) -> dict:
    """Content payload for an HTML body."""
    return {"type": "tiptap", "data": html}
