"""Bounded connection pool shared by the store backends."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, List, Set

from .exceptions import PoolExhausted, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolStats:
    size: int
    idle: int
    active: int
    max_size: int


class ConnectionPool:
    """Hands out at most ``max_size`` connections at a time.

    Connections are opened lazily by ``connect`` in a worker thread and kept
    for reuse. Callers beyond capacity wait up to ``acquire_timeout`` seconds
    and then get ``PoolExhausted``.
    """

    def __init__(
        self,
        connect: Callable[[], Any],
        disconnect: Callable[[Any], None],
        max_size: int = 10,
        acquire_timeout: float = 30.0,
        name: str = "db",
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.name = name
        self.max_size = max_size
        self.acquire_timeout = acquire_timeout
        self._connect = connect
        self._disconnect = disconnect
        self._slots = asyncio.Semaphore(max_size)
        self._idle: List[Any] = []
        self._size = 0
        self._active = 0
        self._pending: Set["asyncio.Task[None]"] = set()

    def stats(self) -> PoolStats:
        return PoolStats(
            size=self._size,
            idle=len(self._idle),
            active=self._active,
            max_size=self.max_size,
        )

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Any]:
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self.acquire_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Pool '{self.name}' exhausted: {self.max_size} connections busy "
                f"after waiting {self.acquire_timeout}s"
            )
            raise PoolExhausted(
                f"No database connection available within {self.acquire_timeout}s"
            )

        try:
            conn = await self._checkout()
        except Exception:
            self._slots.release()
            raise

        self._active += 1
        reusable = False
        try:
            yield conn
            reusable = True
        except Exception:
            reusable = True
            raise
        finally:
            # a cancelled holder may leave a worker thread still using conn
            self._active -= 1
            if reusable:
                self._idle.append(conn)
            else:
                self._discard(conn)
            self._slots.release()

    async def _checkout(self) -> Any:
        if self._idle:
            return self._idle.pop()
        try:
            conn = await asyncio.to_thread(self._connect)
        except Exception as e:
            logger.error(f"Pool '{self.name}' failed to open a connection: {e}")
            raise StoreError(f"Failed to open database connection: {e}") from e
        self._size += 1
        logger.debug(f"Pool '{self.name}' opened connection {self._size}/{self.max_size}")
        return conn

    def _discard(self, conn: Any) -> None:
        self._size -= 1
        logger.warning(f"Pool '{self.name}' discarded a connection abandoned by a cancelled operation")
        task = asyncio.get_running_loop().create_task(self._disconnect_later(conn))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _disconnect_later(self, conn: Any) -> None:
        try:
            await asyncio.to_thread(self._disconnect, conn)
        except Exception as e:
            logger.warning(f"Pool '{self.name}' failed to close a discarded connection: {e}")

    async def close(self) -> None:
        """Close idle connections. Busy connections are left to their holders."""
        while self._idle:
            conn = self._idle.pop()
            self._size -= 1
            try:
                await asyncio.to_thread(self._disconnect, conn)
            except Exception as e:
                logger.warning(f"Pool '{self.name}' failed to close a connection: {e}")
        logger.info(f"Pool '{self.name}' closed")
