"""Item store implementations: in-memory and SQLAlchemy/SQLite backed."""
import asyncio
import copy
import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from notekeep.exceptions import ErrorCode, StorageError
from notekeep.models.db_models import DBItem, get_session_factory
from notekeep.storage.base import Record

logger = logging.getLogger(__name__)


def _require_id(record: Record) -> str:
    item_id = record.get("id")
    if not item_id:
        raise ValueError("Record must carry a non-empty 'id'")
    return item_id


class MemoryItemStore:
    """Item store kept in a process-local dict.

    Records are deep-copied on the way in and out, so a caller holding a
    returned record can never mutate what is stored.
    """

    def __init__(self, name: str = "items"):
        self.name = name
        self._items: Dict[str, Record] = {}

    async def get(self, item_id: str) -> Optional[Record]:
        record = self._items.get(item_id)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, record: Record) -> str:
        item_id = _require_id(record)
        self._items[item_id] = copy.deepcopy(record)
        return item_id

    async def delete(self, item_id: str) -> None:
        self._items.pop(item_id, None)

    async def list(self) -> List[Record]:
        return [copy.deepcopy(record) for record in self._items.values()]

    def __len__(self) -> int:
        return len(self._items)


class SqlItemStore:
    """Item store persisted in the ``items`` table, one collection per instance.

    SQLAlchemy sessions are synchronous; every call is pushed to a worker
    thread with ``asyncio.to_thread`` so the event loop never blocks on I/O.
    """

    def __init__(self, engine, collection: str):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine, usually from ``init_db()``.
            collection: Name partitioning this store's rows in the shared table.
        """
        self.engine = engine
        self.collection = collection
        self.session_factory = get_session_factory(engine)

    def _wrap(self, operation: str, error: SQLAlchemyError, code: ErrorCode) -> StorageError:
        logger.error(f"{operation} failed on collection '{self.collection}': {error}")
        return StorageError(
            f"Item store {operation} failed",
            operation=operation,
            collection=self.collection,
            code=code,
            original_error=error,
        )

    def _get_sync(self, item_id: str) -> Optional[Record]:
        with self.session_factory() as session:
            db_item = session.get(DBItem, (self.collection, item_id))
            return copy.deepcopy(db_item.data) if db_item else None

    def _put_sync(self, record: Record) -> str:
        item_id = _require_id(record)
        with self.session_factory() as session:
            db_item = session.get(DBItem, (self.collection, item_id))
            if db_item is None:
                db_item = DBItem(collection=self.collection, id=item_id)
                session.add(db_item)
            db_item.data = copy.deepcopy(record)
            db_item.date_edited = record.get("date_edited")
            session.commit()
        return item_id

    def _delete_sync(self, item_id: str) -> None:
        with self.session_factory() as session:
            session.execute(
                delete(DBItem).where(
                    DBItem.collection == self.collection, DBItem.id == item_id
                )
            )
            session.commit()

    def _list_sync(self) -> List[Record]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(DBItem).where(DBItem.collection == self.collection)
            ).all()
            return [copy.deepcopy(row.data) for row in rows]

    async def get(self, item_id: str) -> Optional[Record]:
        try:
            return await asyncio.to_thread(self._get_sync, item_id)
        except SQLAlchemyError as e:
            raise self._wrap("get", e, ErrorCode.STORAGE_READ_FAILED) from e

    async def put(self, record: Record) -> str:
        try:
            return await asyncio.to_thread(self._put_sync, record)
        except SQLAlchemyError as e:
            raise self._wrap("put", e, ErrorCode.STORAGE_WRITE_FAILED) from e

    async def delete(self, item_id: str) -> None:
        try:
            await asyncio.to_thread(self._delete_sync, item_id)
        except SQLAlchemyError as e:
            raise self._wrap("delete", e, ErrorCode.STORAGE_DELETE_FAILED) from e

    async def list(self) -> List[Record]:
        try:
            return await asyncio.to_thread(self._list_sync)
        except SQLAlchemyError as e:
            raise self._wrap("list", e, ErrorCode.STORAGE_READ_FAILED) from e
