"""Store for note bodies, addressed separately from note metadata."""
import logging
from typing import Any, Optional

from notekeep.models.schema import Content, now_ms
from notekeep.storage.base import ItemStore, Record

logger = logging.getLogger(__name__)


class ContentStore:
    """Keeps note bodies out of the metadata table.

    Large bodies would otherwise be loaded every time the notes are
    scanned for views and grouping.
    """

    def __init__(self, store: ItemStore):
        self._store = store

    async def add(
        self,
        note_id: str,
        type: str,
        data: Any,
        id: Optional[str] = None,
        conflicted: bool = False,
        resolved: bool = False,
    ) -> str:
        """Write a body and return its content ID.

        Passing the note's previous ``id`` overwrites that slot, so a note
        never has more than one live content entry.
        """
        content = Content(
            note_id=note_id,
            type=type,
            data=data,
            conflicted=conflicted,
            resolved=resolved,
            date_edited=now_ms(),
            **({"id": id} if id else {}),
        )
        return await self._store.put(content.model_dump())

    async def get(self, content_id: str) -> Optional[Record]:
        if not content_id:
            return None
        return await self._store.get(content_id)

    async def raw(self, content_id: str) -> Optional[Any]:
        """Return only the body payload of a content entry."""
        content = await self.get(content_id)
        return content["data"] if content else None

    async def remove(self, *content_ids: str) -> None:
        for content_id in content_ids:
            if content_id:
                await self._store.delete(content_id)
