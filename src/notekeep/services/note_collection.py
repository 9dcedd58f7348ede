"""Note collection: lifecycle of note records and their secondary indexes.

Every mutation that touches a note also updates the tag index, the color
index and notebook/topic membership. There are no transactions underneath,
so each call first computes an ``IndexPlan`` (the full list of index
changes), applies it in order, and only then writes the metadata record.
A failure part way leaves at worst an orphaned index entry, which
``IndexReconciler`` can repair.
"""
import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from notekeep.config import SORT_DIRECTIONS, config
from notekeep.content_types import ContentView, get_content_from_data
from notekeep.events import NOTES_REMOVE_EMPTY_NOTE, Publish, no_op_publish
from notekeep.exceptions import (
    ErrorCode,
    InvalidContentTypeError,
    InvalidDestinationError,
    ValidationError,
)
from notekeep.models.note_view import NoteView
from notekeep.models.schema import (
    NOTE_FIELDS,
    ContentPayload,
    Destination,
    Note,
    generate_id,
    now_ms,
)
from notekeep.observability import traced
from notekeep.storage.base import ItemStore, Record
from notekeep.storage.content_store import ContentStore
from notekeep.storage.label_index import LabelIndex, normalize_label
from notekeep.storage.notebooks import Notebooks
from notekeep.storage.trash import Trash
from notekeep.utils import (
    group_by,
    month_name,
    recency_group,
    title_initial,
    week_group,
    year_of,
)

logger = logging.getLogger(__name__)

_LINE_BREAKS = re.compile(r"\r?\n")


@dataclass(frozen=True)
class IndexChange:
    """One add or remove against the tag, color or topic index."""

    kind: str  # "tag", "color" or "topic"
    op: str  # "add" or "remove"
    label: str
    notebook_id: Optional[str] = None


@dataclass
class IndexPlan:
    """Ordered index changes for one note, computed before any is applied."""

    changes: List[IndexChange] = field(default_factory=list)

    def add(self, kind: str, label: str) -> None:
        self.changes.append(IndexChange(kind, "add", label))

    def remove(self, kind: str, label: str, notebook_id: Optional[str] = None) -> None:
        self.changes.append(IndexChange(kind, "remove", label, notebook_id))

    def __len__(self) -> int:
        return len(self.changes)


def _note_title(note: Mapping[str, Any], content: ContentView) -> str:
    title = note.get("title")
    if title and title.strip():
        return _LINE_BREAKS.sub(" ", title)
    return content.to_title()


def _note_headline(note: Mapping[str, Any], content: ContentView) -> str:
    if note.get("locked"):
        return ""
    return content.to_headline()


def _is_note_empty(note: Mapping[str, Any], content: ContentView) -> bool:
    title = note.get("title")
    is_title_empty = not title or not title.strip()
    return not note.get("locked") and is_title_empty and content.is_empty()


def _is_live(record: Optional[Record]) -> bool:
    return record is not None and not record.get("deleted")


def _validate_note(data: Mapping[str, Any]) -> Record:
    try:
        return Note.model_validate(data).to_record()
    except PydanticValidationError as e:
        error = e.errors()[0]
        raise ValidationError(
            f"Invalid note: {error['msg']}",
            field=".".join(str(p) for p in error["loc"]),
            code=ErrorCode.NOTE_VALIDATION_FAILED,
        ) from e


def _label_plan(old: Optional[Record], new: Record) -> IndexPlan:
    """Tag and color changes turning ``old`` into ``new``, removals first.

    ``old`` is None for a note that has no live record yet.
    """
    old = old or {}
    old_tags = {normalize_label(t) for t in old.get("tags") or []}
    new_tags = set(new["tags"])
    old_color = normalize_label(old.get("color") or "") or None

    plan = IndexPlan()
    for tag in old.get("tags") or []:
        if normalize_label(tag) not in new_tags:
            plan.remove("tag", tag)
    if old_color and old_color != new["color"]:
        plan.remove("color", old_color)
    for tag in new["tags"]:
        if tag not in old_tags:
            plan.add("tag", tag)
    if new["color"] and new["color"] != old_color:
        plan.add("color", new["color"])
    return plan


class NoteCollection:
    """Create, update, query, group, move and delete notes.

    Collaborators are passed in explicitly; ``publish`` receives
    notifications such as ``notes:removeEmptyNote``.
    """

    def __init__(
        self,
        store: ItemStore,
        content: ContentStore,
        tags: LabelIndex,
        colors: LabelIndex,
        notebooks: Notebooks,
        trash: Trash,
        publish: Publish = no_op_publish,
    ):
        self.store = store
        self.content = content
        self.tags = tags
        self.colors = colors
        self.notebooks = notebooks
        self.trash = trash
        self._publish = publish

    # =========================================================================
    # Index plans
    # =========================================================================

    def _label_index(self, kind: str) -> LabelIndex:
        return self.tags if kind == "tag" else self.colors

    async def _apply(self, plan: IndexPlan, note_id: str) -> None:
        """Apply index changes one at a time; the first failure propagates."""
        for change in plan.changes:
            if change.kind == "topic":
                notebook = await self.notebooks.notebook(change.notebook_id)
                topic = notebook.topics.topic(change.label) if notebook else None
                if topic is None:
                    logger.warning(
                        f"Note {note_id} references missing topic "
                        f"{change.notebook_id}/{change.label}"
                    )
                    continue
                await topic.delete(note_id)
            elif change.op == "add":
                await self._label_index(change.kind).add(change.label, note_id)
            else:
                await self._label_index(change.kind).remove(change.label, note_id)

    # =========================================================================
    # Upsert
    # =========================================================================

    @traced("notes.add")
    async def add(self, note: Optional[Mapping[str, Any]]) -> Optional[str]:
        """Create a note or merge fields into an existing one.

        Args:
            note: Partial note. Besides the note fields it may carry
                ``content`` ({type, data, conflicted, resolved}) and the
                ``remote`` / ``migrated`` import flags.

        Returns:
            The note ID, or None when the call had no effect (nothing to
            create, or the edit emptied the note and it was deleted).

        Raises:
            InvalidContentTypeError: ``content.type`` is not registered.
            ValidationError: The merged note does not fit the note shape.
        """
        if not note:
            return None

        note_id = note.get("id") or generate_id()
        old_note = await self.store.get(note_id)

        if note.get("remote") or note.get("migrated"):
            return await self._add_imported(note_id, note, old_note)

        if old_note is None and not note.get("content") and not note.get("content_id"):
            return None

        merged: Dict[str, Any] = dict(old_note or {})
        merged.update({k: v for k, v in note.items() if k in NOTE_FIELDS})
        merged["id"] = note_id
        merged["type"] = "note"

        # Validate before anything is written
        record = _validate_note(merged)

        payload = None
        content_arg = note.get("content")
        if content_arg:
            payload = ContentPayload.model_validate(content_arg)
            if not payload.type or payload.data is None:
                payload = None
        if payload is not None:
            content = get_content_from_data(payload.type, payload.data)
            if content is None:
                raise InvalidContentTypeError(payload.type, note_id)

            record["title"] = _note_title(record, content)
            record["headline"] = _note_headline(record, content)

            if _is_note_empty(record, content):
                if _is_live(old_note):
                    logger.info(f"Edit emptied note {note_id}, deleting it")
                    await self.delete(note_id)
                    self._publish(NOTES_REMOVE_EMPTY_NOTE, note_id)
                return None

        plan = _label_plan(old_note if _is_live(old_note) else None, record)

        if payload is not None:
            record["content_id"] = await self.content.add(
                note_id=note_id,
                id=record.get("content_id"),
                type=payload.type,
                data=payload.data,
                conflicted=payload.conflicted,
                resolved=payload.resolved,
            )

        record["date_edited"] = now_ms()
        await self._apply(plan, note_id)
        await self.store.put(record)
        return note_id

    async def _add_imported(
        self, note_id: str, note: Mapping[str, Any], old_note: Optional[Record]
    ) -> str:
        """Store a remote or migrated record verbatim, reconciling its indexes."""
        plan = IndexPlan()
        if old_note is not None:
            if old_note.get("color") and old_note.get("color") != note.get("color"):
                plan.remove("color", old_note["color"])
            for tag in old_note.get("tags") or []:
                plan.remove("tag", tag)
        if note.get("color"):
            plan.add("color", note["color"])
        for tag in note.get("tags") or []:
            plan.add("tag", tag)
        await self._apply(plan, note_id)

        record = dict(note)
        record["id"] = note_id
        await self.store.put(record)
        return note_id

    # =========================================================================
    # Lookup and views
    # =========================================================================

    async def note(self, note: Union[str, Mapping[str, Any], None]) -> Optional[NoteView]:
        """Return a view of a live note by ID or by an already-loaded record."""
        if not note:
            return None
        if isinstance(note, Mapping) and note.get("type"):
            record = note
        elif isinstance(note, str):
            record = await self.store.get(note)
        else:
            return None
        if not _is_live(record):
            return None
        return NoteView(record, self)

    async def raw(self) -> List[Record]:
        """Every stored record, tombstones included."""
        return await self.store.list()

    async def all(self) -> List[Record]:
        return [record for record in await self.store.list() if _is_live(record)]

    async def pinned(self) -> List[Record]:
        return [note for note in await self.all() if note.get("pinned") is True]

    async def conflicted(self) -> List[Record]:
        return [note for note in await self.all() if note.get("conflicted") is True]

    async def favorites(self) -> List[Record]:
        return [note for note in await self.all() if note.get("favorite") is True]

    async def _indexed(self, index: LabelIndex, label: str) -> List[Optional[Record]]:
        # Stale index entries come back as None rather than being filtered
        entry = await index.lookup(label)
        if not entry or not entry["note_ids"]:
            return []
        return [await self.store.get(note_id) for note_id in entry["note_ids"]]

    async def tagged(self, tag: str) -> List[Optional[Record]]:
        return await self._indexed(self.tags, tag)

    async def colored(self, color: str) -> List[Optional[Record]]:
        return await self._indexed(self.colors, color)

    @traced("notes.group")
    async def group(
        self,
        by: Optional[str] = None,
        sort: Optional[str] = None,
        now: Optional[int] = None,
    ) -> Dict[str, List[Record]]:
        """Partition live notes into named buckets.

        Args:
            by: "abc", "month", "week", "year", or None for the
                Recent / Last week / Older split.
            sort: "desc" (default from config) or "asc". Applies to bucket
                order and to order within a bucket.
            now: Reference time in epoch ms for the recency split.

        Returns:
            Ordered mapping of bucket name to note records.
        """
        sort = sort or config.default_group_sort
        if sort not in SORT_DIRECTIONS:
            raise ValidationError(
                f"Sort must be one of {SORT_DIRECTIONS}", field="sort", value=sort
            )
        notes = await self.all()

        def created(note: Record) -> int:
            return note.get("date_created") or 0

        if by == "abc":
            def initial(note: Record) -> str:
                return title_initial(note.get("title"))

            return group_by(notes, initial, initial, sort)
        if by == "month":
            return group_by(notes, lambda n: month_name(created(n)), created, sort)
        if by == "week":
            return group_by(notes, lambda n: week_group(created(n)), created, sort)
        if by == "year":
            return group_by(notes, lambda n: year_of(created(n)), created, sort)

        now = now if now is not None else now_ms()
        return group_by(
            notes,
            lambda n: recency_group(created(n), now, config.recent_days),
            created,
            sort,
        )

    # =========================================================================
    # Deletion
    # =========================================================================

    @traced("notes.delete")
    async def delete(self, *note_ids: str) -> List[str]:
        """Soft-delete notes: strip them from every index and move them to the trash."""
        return await self._delete(True, *note_ids)

    @traced("notes.remove")
    async def remove(self, *note_ids: str) -> List[str]:
        """Hard-delete notes: same index cleanup, no trash snapshot."""
        return await self._delete(False, *note_ids)

    async def _delete(self, move_to_trash: bool, *note_ids: str) -> List[str]:
        deleted = []
        for note_id in note_ids:
            item = await self.note(note_id)
            if item is None:
                continue
            snapshot = copy.deepcopy(item.data)

            plan = IndexPlan()
            for notebook in item.notebooks or []:
                for topic_id in notebook.get("topics", []):
                    plan.remove("topic", topic_id, notebook_id=notebook["id"])
            for tag in item.tags:
                plan.remove("tag", tag)
            if item.color:
                plan.remove("color", item.color)
            await self._apply(plan, note_id)

            await self.store.delete(note_id)
            if move_to_trash:
                await self.trash.add(snapshot)
            deleted.append(note_id)
            logger.debug(
                f"{'Deleted' if move_to_trash else 'Removed'} note {note_id} "
                f"({len(plan)} index changes)"
            )
        return deleted

    # =========================================================================
    # Move
    # =========================================================================

    @traced("notes.move")
    async def move(
        self, to: Union[Destination, Mapping[str, Any], None], *note_ids: str
    ) -> None:
        """File notes under a notebook topic.

        Raises:
            InvalidDestinationError: ``to`` is missing, lacks ``id`` or
                ``topic``, or names a notebook or topic that does not exist.
        """
        if to is None:
            raise InvalidDestinationError("The destination notebook cannot be undefined.")
        try:
            destination = to if isinstance(to, Destination) else Destination.model_validate(to)
        except PydanticValidationError as e:
            raise InvalidDestinationError(
                "The destination notebook must contain notebookId and topic."
            ) from e

        notebook = await self.notebooks.notebook(destination.id)
        if notebook is None:
            raise InvalidDestinationError(
                "No such notebook exists.",
                notebook_id=destination.id,
                code=ErrorCode.NOTEBOOK_NOT_FOUND,
            )
        topic = notebook.topics.topic(destination.topic)
        if topic is None:
            raise InvalidDestinationError(
                "No such topic exists.",
                notebook_id=destination.id,
                topic_id=destination.topic,
                code=ErrorCode.TOPIC_NOT_FOUND,
            )
        await topic.add(*note_ids)
