"""Instrumentation wrapper around the item store."""

import logging
import time
from typing import Any, Awaitable, Callable, List, Optional

from database.base import ItemOperations, ItemStore, Record
from database.pool import PoolStats

from tracker_api.metrics import MetricsCollector

logger = logging.getLogger(__name__)

# Store method -> CRUD operation kind
OPERATION_KINDS = {
    "list": "read",
    "create": "create",
    "delete": "delete",
    "resolve": "update",
    "unresolve": "update",
    "set_status": "update",
    "set_position": "update",
    "reorder": "update",
}


class InstrumentedStore(ItemOperations):
    """Times every store operation and records it on the metrics collector.

    Return values and exceptions of the wrapped store pass through unchanged.
    """

    def __init__(self, store: ItemStore, metrics: MetricsCollector):
        self.store = store
        self.metrics = metrics

    @property
    def database_type(self) -> str:
        return self.store.database_type

    async def init(self) -> None:
        await self.store.init()

    async def close(self) -> None:
        await self.store.close()

    def pool_stats(self) -> PoolStats:
        return self.store.pool_stats()

    async def _observe(self, name: str, call: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        start_time = time.perf_counter()
        try:
            result = await call(*args)
        except Exception:
            self._record(name, time.perf_counter() - start_time, False)
            raise
        self._record(name, time.perf_counter() - start_time, True)
        return result

    def _record(self, name: str, duration: float, success: bool) -> None:
        try:
            self.metrics.record_store_operation(OPERATION_KINDS[name], name, duration, success)
        except Exception as e:
            logger.error(f"Failed to record metrics for store operation {name}: {e}")

    async def list(self) -> List[Record]:
        return await self._observe("list", self.store.list)

    async def create(self, title: str, description: str) -> Optional[int]:
        return await self._observe("create", self.store.create, title, description)

    async def delete(self, item_id: int) -> int:
        return await self._observe("delete", self.store.delete, item_id)

    async def set_status(self, item_id: int, status: str) -> int:
        return await self._observe("set_status", self.store.set_status, item_id, status)

    async def resolve(self, item_id: int) -> int:
        return await self._observe("resolve", self.store.resolve, item_id)

    async def unresolve(self, item_id: int) -> int:
        return await self._observe("unresolve", self.store.unresolve, item_id)

    async def set_position(self, item_id: int, position: int) -> int:
        return await self._observe("set_position", self.store.set_position, item_id, position)

    async def reorder(self, moved_id: int, target_id: int) -> bool:
        return await self._observe("reorder", self.store.reorder, moved_id, target_id)
