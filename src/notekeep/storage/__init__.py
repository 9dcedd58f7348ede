"""Storage layer for the notekeep collection manager."""

from notekeep.storage.base import ItemStore
from notekeep.storage.content_store import ContentStore
from notekeep.storage.item_store import MemoryItemStore, SqlItemStore
from notekeep.storage.label_index import LabelIndex
from notekeep.storage.notebooks import Notebook, Notebooks, Topic
from notekeep.storage.trash import Trash

__all__ = [
    "ItemStore",
    "MemoryItemStore",
    "SqlItemStore",
    "ContentStore",
    "LabelIndex",
    "Notebooks",
    "Notebook",
    "Topic",
    "Trash",
]
