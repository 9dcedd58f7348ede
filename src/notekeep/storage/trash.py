"""Trash: holding area for soft-deleted note snapshots."""
import datetime
import logging
from typing import Any, List, Mapping, Optional

from notekeep.config import config
from notekeep.models.schema import now_ms
from notekeep.storage.base import ItemStore, Record

logger = logging.getLogger(__name__)

# Keys the trash adds on top of the note snapshot
_TRASH_KEYS = ("item_type", "date_deleted")


class Trash:
    """Snapshots of deleted notes, restorable until purged.

    ``db`` is the owning database, used to re-add notes on restore and to
    drop their bodies on purge.
    """

    def __init__(self, store: ItemStore, db: Any):
        self._store = store
        self._db = db

    async def add(self, snapshot: Mapping[str, Any]) -> str:
        """Store a snapshot of a deleted note."""
        item = dict(snapshot)
        item["item_type"] = item.get("type", "note")
        item["type"] = "trash"
        item["date_deleted"] = now_ms()
        return await self._store.put(item)

    async def get(self, item_id: str) -> Optional[Record]:
        return await self._store.get(item_id)

    async def all(self) -> List[Record]:
        items = await self._store.list()
        return sorted(items, key=lambda i: i.get("date_deleted", 0), reverse=True)

    async def restore(self, *item_ids: str) -> List[str]:
        """Put notes back into the collection and refile them where possible.

        Notebooks or topics deleted in the meantime are skipped.
        """
        restored = []
        for item_id in item_ids:
            item = await self._store.get(item_id)
            if item is None:
                continue
            note = {k: v for k, v in item.items() if k not in _TRASH_KEYS}
            note["type"] = item.get("item_type", "note")
            notebooks = note.pop("notebooks", None) or []

            # The snapshot goes only once the note is back
            await self._db.notes.add(note)
            await self._store.delete(item_id)

            for ref in notebooks:
                notebook = await self._db.notebooks.notebook(ref["id"])
                if notebook is None:
                    continue
                for topic_id in ref.get("topics", []):
                    topic = notebook.topics.topic(topic_id)
                    if topic is not None:
                        await topic.add(item_id)
            restored.append(item_id)
            logger.info(f"Restored note {item_id} from trash")
        return restored

    async def delete(self, *item_ids: str) -> None:
        """Purge snapshots permanently, including their note bodies."""
        for item_id in item_ids:
            item = await self._store.get(item_id)
            if item is None:
                continue
            if item.get("content_id"):
                await self._db.content.remove(item["content_id"])
            await self._store.delete(item_id)
            logger.info(f"Purged note {item_id} from trash")

    async def clear(self) -> None:
        items = await self._store.list()
        await self.delete(*(item["id"] for item in items))

    async def cleanup(self, now: Optional[int] = None) -> List[str]:
        """Purge snapshots older than the configured retention period."""
        now = now if now is not None else now_ms()
        cutoff = now - int(
            datetime.timedelta(days=config.trash_retention_days).total_seconds() * 1000
        )
        expired = [
            item["id"]
            for item in await self._store.list()
            if item.get("date_deleted", now) < cutoff
        ]
        await self.delete(*expired)
        return expired
