"""
Store interface for learning items.

``ItemOperations`` is the logical capability surface every fulfillment path
implements (local store, instrumented store, remote peer). ``ItemStore`` is
the persistent-store half: it owns record lifecycle and leaves the
backend-specific queries to subclasses, which run them on pooled
connections inside worker threads.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .exceptions import StoreError, TrackerError, ValidationError
from .ordering import COMPLETED_STATUS, DEFAULT_STATUS, plan_reorder
from .pool import ConnectionPool, PoolStats

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class ItemOperations:
    """Logical operations on learning items (to be extended by specific implementations)"""

    async def list(self) -> List[Record]:
        raise NotImplementedError

    async def create(self, title: str, description: str) -> Optional[int]:
        raise NotImplementedError

    async def delete(self, item_id: int) -> int:
        raise NotImplementedError

    async def set_status(self, item_id: int, status: str) -> int:
        raise NotImplementedError

    async def resolve(self, item_id: int) -> int:
        raise NotImplementedError

    async def unresolve(self, item_id: int) -> int:
        raise NotImplementedError

    async def set_position(self, item_id: int, position: int) -> int:
        raise NotImplementedError

    async def reorder(self, moved_id: int, target_id: int) -> bool:
        raise NotImplementedError


def _require_text(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Title and description are required")
    return str(value).strip()


class ItemStore(ItemOperations, ABC):
    """Persistent store for learning items backed by a connection pool."""

    database_type = "unknown"

    def __init__(self, pool_size: int = 10, acquire_timeout: float = 30.0):
        self.pool = ConnectionPool(
            connect=self._connect,
            disconnect=self._disconnect,
            max_size=pool_size,
            acquire_timeout=acquire_timeout,
            name=self.database_type,
        )
        self._reorder_lock = asyncio.Lock()

    # Backend hooks, all synchronous and run in a worker thread

    @abstractmethod
    def _connect(self) -> Any:
        ...

    @abstractmethod
    def _disconnect(self, conn: Any) -> None:
        ...

    @abstractmethod
    def _init_schema(self, conn: Any) -> None:
        ...

    @abstractmethod
    def _select_ordered(self, conn: Any) -> List[Record]:
        ...

    @abstractmethod
    def _insert(self, conn: Any, title: str, description: str, created_at: datetime) -> int:
        ...

    @abstractmethod
    def _delete(self, conn: Any, item_id: int) -> int:
        ...

    @abstractmethod
    def _update(self, conn: Any, item_id: int, fields: Dict[str, Any]) -> int:
        ...

    @abstractmethod
    def _renumber(self, conn: Any, ordered_ids: List[int]) -> None:
        ...

    def _translate_error(self, error: Exception) -> TrackerError:
        return StoreError(f"{self.database_type} operation failed: {error}")

    async def _run(self, operation: Callable[..., Any], *args: Any) -> Any:
        async with self.pool.connection() as conn:
            try:
                return await asyncio.to_thread(operation, conn, *args)
            except TrackerError:
                raise
            except Exception as e:
                logger.error(f"{self.database_type} {operation.__name__.lstrip('_')} failed: {e}")
                raise self._translate_error(e) from e

    # Lifecycle

    async def init(self) -> None:
        """Create the schema. Safe to call on an already initialized store."""
        await self._run(self._init_schema)
        logger.info(f"Connected to {self.database_type} database, schema ready")

    async def close(self) -> None:
        await self.pool.close()

    def pool_stats(self) -> PoolStats:
        return self.pool.stats()

    # Operations

    async def list(self) -> List[Record]:
        return await self._run(self._select_ordered)

    async def create(self, title: str, description: str) -> int:
        title = _require_text(title)
        description = _require_text(description)
        return await self._run(self._insert, title, description, datetime.now(timezone.utc))

    async def delete(self, item_id: int) -> int:
        return await self._run(self._delete, item_id)

    async def set_status(self, item_id: int, status: str) -> int:
        if status is None or not str(status).strip():
            raise ValidationError("Status is required")
        # resolved follows the status on a direct set; unknown statuses are kept verbatim
        return await self._run(
            self._update, item_id, {"status": status, "resolved": status == COMPLETED_STATUS}
        )

    async def resolve(self, item_id: int) -> int:
        return await self._run(
            self._update, item_id, {"resolved": True, "status": COMPLETED_STATUS}
        )

    async def unresolve(self, item_id: int) -> int:
        return await self._run(
            self._update, item_id, {"resolved": False, "status": DEFAULT_STATUS}
        )

    async def set_position(self, item_id: int, position: int) -> int:
        return await self._run(self._update, item_id, {"order_index": int(position)})

    async def reorder(self, moved_id: int, target_id: int) -> bool:
        """Move ``moved_id`` into ``target_id``'s slot and renumber every record."""
        async with self._reorder_lock:
            records = await self.list()
            new_order = plan_reorder([record["id"] for record in records], moved_id, target_id)
            await self._run(self._renumber, new_order)
        logger.debug(f"Renumbered {len(new_order)} items after moving {moved_id} onto {target_id}")
        return True
