"""Storage interfaces shared by the notekeep collections."""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

Record = Dict[str, Any]


@runtime_checkable
class ItemStore(Protocol):
    """Generic keyed record storage for one collection.

    Records are plain dicts carrying an ``id`` key. The store has no
    knowledge of what the records mean.
    """

    async def get(self, item_id: str) -> Optional[Record]:
        ...

    async def put(self, record: Record) -> str:
        ...

    async def delete(self, item_id: str) -> None:
        ...

    async def list(self) -> List[Record]:
        ...
