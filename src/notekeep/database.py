"""Database facade wiring stores, indexes and collections together."""
import logging
from typing import Callable, Optional

from notekeep.events import EventChannel
from notekeep.models.db_models import init_db
from notekeep.services.note_collection import NoteCollection
from notekeep.services.repair import IndexReconciler
from notekeep.storage.base import ItemStore
from notekeep.storage.content_store import ContentStore
from notekeep.storage.item_store import MemoryItemStore, SqlItemStore
from notekeep.storage.label_index import LabelIndex
from notekeep.storage.notebooks import Notebooks
from notekeep.storage.trash import Trash

logger = logging.getLogger(__name__)

StoreFactory = Callable[[str], ItemStore]


class Database:
    """One note store: notes, bodies, tags, colors, notebooks and trash.

    Args:
        store_factory: Called once per collection name ("notes", "content",
            "tags", "colors", "notebooks", "trash") to build its item store.
            Defaults to in-memory stores.
        events: Channel receiving collection notifications.
    """

    def __init__(
        self,
        store_factory: StoreFactory = MemoryItemStore,
        events: Optional[EventChannel] = None,
    ):
        self.events = events or EventChannel()
        self.engine = None
        self.content = ContentStore(store_factory("content"))
        self.tags = LabelIndex(store_factory("tags"), "tag")
        self.colors = LabelIndex(store_factory("colors"), "color")
        self.notebooks = Notebooks(store_factory("notebooks"), self)
        self.trash = Trash(store_factory("trash"), self)
        self.notes = NoteCollection(
            store_factory("notes"),
            content=self.content,
            tags=self.tags,
            colors=self.colors,
            notebooks=self.notebooks,
            trash=self.trash,
            publish=self.events.publish,
        )
        self.reconciler = IndexReconciler(self.notes)

    @classmethod
    def open_sql(
        cls, db_url: Optional[str] = None, events: Optional[EventChannel] = None
    ) -> "Database":
        """Open a database persisted through SQLAlchemy (SQLite by default)."""
        engine = init_db(db_url)
        db = cls(lambda name: SqlItemStore(engine, name), events=events)
        db.engine = engine
        logger.info(f"Opened SQL note store at {engine.url}")
        return db

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
