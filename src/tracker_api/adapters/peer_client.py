"""Peer API client - forwards item operations to a remote api-only instance."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from database.base import ItemOperations, Record

from tracker_api.errors import PeerUnavailable
from tracker_api.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class PeerClient(ItemOperations):
    """HTTP client implementing the item operations against a peer API.

    Each logical operation is exactly one outbound request under a fixed
    timeout. Failures are never retried.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize the peer client.

        Args:
            base_url: Peer API base URL, e.g. http://api:3000
            timeout: Request timeout in seconds
            session: Optional requests session (a fresh one is created otherwise)
            metrics: Collector for peer call metrics
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.metrics = metrics

        logger.info(f"PeerClient initialized for {self.base_url}")

    async def _call(self, operation: str, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        start_time = time.perf_counter()
        try:
            response = await asyncio.to_thread(
                self.session.request,
                method,
                f"{self.base_url}{path}",
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self._record(operation, start_time, False)
            logger.error(f"Peer {operation} failed: {method} {path} - {e}")
            raise PeerUnavailable(f"API server unavailable: {e}") from e

        if not 200 <= response.status_code < 300:
            self._record(operation, start_time, False)
            message = self._error_message(response)
            logger.error(f"Peer {operation} returned {response.status_code}: {message}")
            raise PeerUnavailable(message, status_code=response.status_code)

        self._record(operation, start_time, True)
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"API server responded with status {response.status_code}"

    def _record(self, operation: str, start_time: float, success: bool) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record_peer_request(operation, time.perf_counter() - start_time, success)
        except Exception as e:
            logger.error(f"Failed to record metrics for peer call {operation}: {e}")

    # ItemOperations interface implementation

    async def list(self) -> List[Record]:
        return await self._call("list", "GET", "/items")

    async def create(self, title: str, description: str) -> Optional[int]:
        body = await self._call("create", "POST", "/items", {"title": title, "description": description})
        return body.get("id") if isinstance(body, dict) else None

    async def delete(self, item_id: int) -> int:
        await self._call("delete", "DELETE", f"/items/{item_id}")
        return 1

    async def set_status(self, item_id: int, status: str) -> int:
        await self._call("set_status", "POST", f"/items/{item_id}/status", {"status": status})
        return 1

    async def resolve(self, item_id: int) -> int:
        await self._call("resolve", "POST", f"/items/{item_id}/resolve")
        return 1

    async def unresolve(self, item_id: int) -> int:
        await self._call("unresolve", "POST", f"/items/{item_id}/unresolve")
        return 1

    async def set_position(self, item_id: int, position: int) -> int:
        await self._call("set_position", "POST", f"/items/{item_id}/position", {"position": position})
        return 1

    async def reorder(self, moved_id: int, target_id: int) -> bool:
        await self._call("reorder", "POST", "/items/reorder", {"draggedId": moved_id, "targetId": target_id})
        return True

    # Additional utility methods

    async def health(self) -> Dict[str, Any]:
        """Identity and version of the peer, from its /health endpoint."""
        return await self._call("health", "GET", "/health")

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()
            logger.info("PeerClient session closed")
