"""Notebooks and their topics, the third membership index for notes.

A topic keeps the list of note IDs filed under it; each note mirrors that
in its ``notebooks`` field. ``Topic.add`` and ``Topic.delete`` update both
sides.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from notekeep.exceptions import ErrorCode, ValidationError
from notekeep.models.schema import generate_id, now_ms
from notekeep.storage.base import ItemStore, Record

logger = logging.getLogger(__name__)


def _new_topic(title: str) -> Record:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Topic title cannot be empty", field="title")
    return {"id": generate_id(), "title": title, "notes": [], "date_created": now_ms()}


class Topic:
    """Handle on one topic of one notebook."""

    def __init__(self, notebooks: "Notebooks", notebook_id: str, record: Record):
        self._notebooks = notebooks
        self.notebook_id = notebook_id
        self._record = record

    @property
    def id(self) -> str:
        return self._record["id"]

    @property
    def title(self) -> str:
        return self._record["title"]

    @property
    def notes(self) -> List[str]:
        return list(self._record["notes"])

    async def _reload(self) -> tuple:
        notebook = await self._notebooks._store.get(self.notebook_id)
        if notebook is None:
            raise ValidationError(
                f"Notebook '{self.notebook_id}' no longer exists",
                field="notebook_id",
                value=self.notebook_id,
                code=ErrorCode.NOTEBOOK_NOT_FOUND,
            )
        for topic in notebook["topics"]:
            if topic["id"] == self.id:
                return notebook, topic
        raise ValidationError(
            f"Topic '{self.id}' no longer exists",
            field="topic_id",
            value=self.id,
            code=ErrorCode.TOPIC_NOT_FOUND,
        )

    async def add(self, *note_ids: str) -> None:
        """File live notes under this topic. Already-filed notes are left alone."""
        notes = self._notebooks.notes
        notebook, topic = await self._reload()
        for note_id in note_ids:
            note = await notes.note(note_id)
            if note is None:
                continue
            refs = [dict(ref) for ref in note.notebooks or []]
            ref = next((r for r in refs if r["id"] == self.notebook_id), None)
            if ref is None:
                refs.append({"id": self.notebook_id, "topics": [self.id]})
            elif self.id not in ref["topics"]:
                ref["topics"] = [*ref["topics"], self.id]
            elif note_id in topic["notes"]:
                continue
            if note_id not in topic["notes"]:
                topic["notes"].append(note_id)
            await notes.add({"id": note_id, "notebooks": refs})
        await self._notebooks._store.put(notebook)
        self._record = topic

    async def delete(self, *note_ids: str) -> None:
        """Unfile notes from this topic, dropping emptied notebook references."""
        notes = self._notebooks.notes
        notebook, topic = await self._reload()
        topic["notes"] = [i for i in topic["notes"] if i not in note_ids]
        await self._notebooks._store.put(notebook)
        self._record = topic

        for note_id in note_ids:
            note = await notes.note(note_id)
            if note is None or not note.notebooks:
                continue
            refs = []
            for ref in note.notebooks:
                ref = dict(ref)
                if ref["id"] == self.notebook_id:
                    ref["topics"] = [t for t in ref["topics"] if t != self.id]
                if ref["topics"]:
                    refs.append(ref)
            await notes.add({"id": note_id, "notebooks": refs or None})


class Topics:
    """Topic accessor of a loaded notebook."""

    def __init__(self, notebook: "Notebook"):
        self._notebook = notebook

    @property
    def all(self) -> List[Topic]:
        return [
            Topic(self._notebook._notebooks, self._notebook.id, record)
            for record in self._notebook.data["topics"]
        ]

    def topic(self, topic_id: str) -> Optional[Topic]:
        for record in self._notebook.data["topics"]:
            if record["id"] == topic_id:
                return Topic(self._notebook._notebooks, self._notebook.id, record)
        return None

    async def add(self, title: str) -> str:
        """Create a topic and return its ID; an existing title is reused."""
        data = await self._notebook._notebooks._store.get(self._notebook.id)
        for record in data["topics"]:
            if record["title"] == title.strip():
                return record["id"]
        topic = _new_topic(title)
        data["topics"].append(topic)
        await self._notebook._notebooks._store.put(data)
        self._notebook.data = data
        return topic["id"]


class Notebook:
    """Loaded notebook record with its topics."""

    def __init__(self, notebooks: "Notebooks", data: Record):
        self._notebooks = notebooks
        self.data = data

    @property
    def id(self) -> str:
        return self.data["id"]

    @property
    def title(self) -> str:
        return self.data["title"]

    @property
    def topics(self) -> Topics:
        return Topics(self)


class Notebooks:
    """Collection of notebooks.

    ``db`` is the owning database; its ``notes`` collection is resolved at
    call time because notes and notebooks refer to each other.
    """

    def __init__(self, store: ItemStore, db: Any):
        self._store = store
        self._db = db

    @property
    def notes(self):
        return self._db.notes

    async def add(self, notebook: Mapping[str, Any]) -> str:
        """Create a notebook, or update title/description and append new topics."""
        title = (notebook.get("title") or "").strip()
        if not title:
            raise ValidationError("Notebook title cannot be empty", field="title")

        notebook_id = notebook.get("id") or generate_id()
        existing: Optional[Dict[str, Any]] = await self._store.get(notebook_id)
        data = existing or {
            "id": notebook_id,
            "type": "notebook",
            "topics": [],
            "date_created": now_ms(),
        }
        data["title"] = title
        data["description"] = notebook.get("description", data.get("description"))
        known = {t["title"] for t in data["topics"]}
        for topic_title in notebook.get("topics") or []:
            if topic_title.strip() not in known:
                data["topics"].append(_new_topic(topic_title))
                known.add(topic_title.strip())
        await self._store.put(data)
        return notebook_id

    async def notebook(self, notebook_id: str) -> Optional[Notebook]:
        if not notebook_id:
            return None
        data = await self._store.get(notebook_id)
        return Notebook(self, data) if data else None

    async def all(self) -> List[Record]:
        return await self._store.list()

    async def set_topic_notes(
        self, notebook_id: str, topic_id: str, note_ids: List[str]
    ) -> bool:
        """Overwrite a topic's note list without touching the notes (index repair).

        Returns:
            False when the notebook or topic does not exist.
        """
        data = await self._store.get(notebook_id)
        if data is None:
            return False
        for topic in data["topics"]:
            if topic["id"] == topic_id:
                topic["notes"] = list(dict.fromkeys(note_ids))
                await self._store.put(data)
                return True
        return False

    async def delete(self, *notebook_ids: str) -> None:
        """Delete notebooks after unfiling every note from their topics."""
        for notebook_id in notebook_ids:
            notebook = await self.notebook(notebook_id)
            if notebook is None:
                continue
            for topic in notebook.topics.all:
                if topic.notes:
                    await topic.delete(*topic.notes)
            await self._store.delete(notebook_id)
            logger.info(f"Deleted notebook {notebook_id}")
