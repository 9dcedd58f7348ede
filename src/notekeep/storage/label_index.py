"""Inverted label indexes (tags, colors) mapping a label to note IDs."""
import logging
from typing import Iterable, List, Optional

from notekeep.exceptions import ValidationError
from notekeep.models.schema import now_ms
from notekeep.storage.base import ItemStore, Record

logger = logging.getLogger(__name__)


def normalize_label(label: str) -> str:
    """Labels are stored trimmed; matching is otherwise exact."""
    return label.strip() if isinstance(label, str) else label


class LabelIndex:
    """Index for one kind of label ("tag" or "color").

    Each entry is a record ``{id, title, note_ids, date_created}`` keyed by
    the label itself. An entry whose last note is removed is dropped.
    """

    def __init__(self, store: ItemStore, kind: str):
        """Initialize the index.

        Args:
            store: Item store holding this index's entries.
            kind: Label kind, used in logs and error messages.
        """
        self._store = store
        self.kind = kind

    def _key(self, label: str) -> str:
        key = normalize_label(label)
        if not key:
            raise ValidationError(
                f"{self.kind.capitalize()} label cannot be empty",
                field=self.kind,
                value=label,
            )
        return key

    async def add(self, label: str, note_id: str) -> None:
        """Associate a note with a label, creating the entry if needed."""
        key = self._key(label)
        entry = await self._store.get(key)
        if entry is None:
            entry = {"id": key, "title": key, "note_ids": [], "date_created": now_ms()}
        if note_id in entry["note_ids"]:
            return
        entry["note_ids"].append(note_id)
        await self._store.put(entry)

    async def remove(self, label: str, note_id: str) -> None:
        """Drop a note from a label; a missing label or note is not an error."""
        if not normalize_label(label):
            return
        key = self._key(label)
        entry = await self._store.get(key)
        if entry is None or note_id not in entry["note_ids"]:
            return
        entry["note_ids"] = [i for i in entry["note_ids"] if i != note_id]
        if entry["note_ids"]:
            await self._store.put(entry)
        else:
            await self._store.delete(key)
            logger.debug(f"Dropped empty {self.kind} '{key}'")

    async def lookup(self, label: str) -> Optional[Record]:
        """Return the entry for a label, or None when nothing carries it."""
        if not normalize_label(label):
            return None
        return await self._store.get(self._key(label))

    async def all(self) -> List[Record]:
        return await self._store.list()

    async def replace(self, label: str, note_ids: Iterable[str]) -> None:
        """Overwrite an entry's note IDs wholesale (used by index repair)."""
        key = self._key(label)
        ids = list(dict.fromkeys(note_ids))
        if not ids:
            await self._store.delete(key)
            return
        entry = await self._store.get(key) or {
            "id": key, "title": key, "date_created": now_ms()
        }
        entry["note_ids"] = ids
        await self._store.put(entry)
