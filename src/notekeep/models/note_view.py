"""Read view over one note record, with a few convenience edits."""
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from notekeep.storage.base import Record
from notekeep.storage.label_index import normalize_label

if TYPE_CHECKING:
    from notekeep.services.note_collection import NoteCollection


class NoteView:
    """Presentation accessor for a note.

    Edits go back through the owning collection so the indexes stay in step;
    the view reloads its record afterwards.
    """

    def __init__(self, record: Record, notes: "NoteCollection"):
        self._data = record
        self._notes = notes

    def __repr__(self) -> str:
        return f"<NoteView(id='{self.id}', title='{self.title}')>"

    @property
    def data(self) -> Record:
        return self._data

    @property
    def id(self) -> str:
        return self._data["id"]

    @property
    def title(self) -> str:
        return self._data.get("title") or ""

    @property
    def headline(self) -> str:
        return self._data.get("headline") or ""

    @property
    def content_id(self) -> Optional[str]:
        return self._data.get("content_id")

    @property
    def tags(self) -> List[str]:
        return list(self._data.get("tags") or [])

    @property
    def color(self) -> Optional[str]:
        return self._data.get("color")

    @property
    def notebooks(self) -> Optional[List[Dict[str, Any]]]:
        return self._data.get("notebooks")

    @property
    def pinned(self) -> bool:
        return bool(self._data.get("pinned"))

    @property
    def favorite(self) -> bool:
        return bool(self._data.get("favorite"))

    @property
    def locked(self) -> bool:
        return bool(self._data.get("locked"))

    @property
    def conflicted(self) -> bool:
        return bool(self._data.get("conflicted"))

    @property
    def date_created(self) -> Optional[int]:
        return self._data.get("date_created")

    async def content(self) -> Optional[Record]:
        """Load the note's body from the content store."""
        return await self._notes.content.get(self.content_id)

    async def _refresh(self) -> None:
        record = await self._notes.store.get(self.id)
        if record is not None:
            self._data = record

    async def _update(self, **fields: Any) -> None:
        await self._notes.add({"id": self.id, **fields})
        await self._refresh()

    async def toggle_pin(self) -> None:
        await self._update(pinned=not self.pinned)

    async def toggle_favorite(self) -> None:
        await self._update(favorite=not self.favorite)

    async def tag(self, label: str) -> None:
        label = normalize_label(label)
        if label not in self.tags:
            await self._update(tags=[*self.tags, label])

    async def untag(self, label: str) -> None:
        label = normalize_label(label)
        if label in self.tags:
            await self._update(tags=[t for t in self.tags if t != label])

    async def color_as(self, label: str) -> None:
        label = normalize_label(label)
        if label != self.color:
            await self._update(color=label)

    async def uncolor(self) -> None:
        if self.color:
            await self._update(color=None)
