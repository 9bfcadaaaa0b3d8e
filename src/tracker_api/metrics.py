"""
Prometheus metrics for the Learning Tracker.

One MetricsCollector is built at process start and handed to every component
that records or reads metrics. It owns its own CollectorRegistry, so nothing
is registered on the prometheus_client default registry.

Collects and exposes:
- process, platform and GC metrics
- HTTP request metrics (duration, count by method/route/status)
- store operation metrics (duration, count by operation kind and method)
- peer request metrics for ui-proxy deployments
- learning items by status and connection pool gauges, refreshed on scrape
"""

import logging
from typing import Any, Dict, Iterable, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Gauge,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from database.pool import PoolStats

logger = logging.getLogger(__name__)

METRICS_NAMESPACE = "learning_tracker"

# 1ms to 5s
HTTP_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 2, 5)

# 1ms to 1s
STORE_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1)

TRACKED_STATUSES = ("todo", "progress", "completed")


class MetricsCollector:
    """Process-wide counters, histograms and gauges."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None, collect_runtime_metrics: bool = True):
        self.registry = registry or CollectorRegistry()

        if collect_runtime_metrics:
            ProcessCollector(namespace=METRICS_NAMESPACE, registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self._init_http_metrics()
        self._init_store_metrics()
        self._init_peer_metrics()
        self._init_application_metrics()

    def _init_http_metrics(self) -> None:
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "route", "status"],
            buckets=HTTP_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["method", "route", "status"],
            registry=self.registry,
        )

    def _init_store_metrics(self) -> None:
        self.db_operation_duration = Histogram(
            "db_operation_duration_seconds",
            "Database operation duration in seconds",
            ["operation", "method"],
            buckets=STORE_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.db_operations_total = Counter(
            "db_operations_total",
            "Total number of database operations",
            ["operation", "method", "success"],
            registry=self.registry,
        )

    def _init_peer_metrics(self) -> None:
        self.peer_request_duration = Histogram(
            "peer_request_duration_seconds",
            "Duration of calls forwarded to the peer API in seconds",
            ["operation"],
            buckets=HTTP_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.peer_requests_total = Counter(
            "peer_requests_total",
            "Total number of calls forwarded to the peer API",
            ["operation", "success"],
            registry=self.registry,
        )

    def _init_application_metrics(self) -> None:
        self._gauges: Dict[str, Gauge] = {
            "learning_items_by_status": Gauge(
                "learning_items_by_status",
                "Number of learning items by status",
                ["status"],
                registry=self.registry,
            ),
            "db_connection_pool_size": Gauge(
                "db_connection_pool_size",
                "Current database connection pool size",
                registry=self.registry,
            ),
            "db_connection_pool_idle": Gauge(
                "db_connection_pool_idle",
                "Number of idle database connections",
                registry=self.registry,
            ),
            "db_connection_pool_active": Gauge(
                "db_connection_pool_active",
                "Number of active database connections",
                registry=self.registry,
            ),
        }

    def record_http_request(self, method: str, route: str, status_code: int, duration_seconds: float) -> None:
        """Record one inbound HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            route: Normalized route path, e.g. /items/:id/resolve
            status_code: HTTP status code
            duration_seconds: Request duration in seconds
        """
        labels = {"method": method, "route": route, "status": str(status_code)}
        self.http_request_duration.labels(**labels).observe(duration_seconds)
        self.http_requests_total.labels(**labels).inc()

    def record_store_operation(self, kind: str, name: str, duration_seconds: float, success: bool) -> None:
        """Record one store operation.

        Args:
            kind: CRUD operation kind (create, read, update, delete)
            name: Store method name
            duration_seconds: Operation duration in seconds
            success: Whether the operation succeeded
        """
        self.db_operation_duration.labels(operation=kind, method=name).observe(duration_seconds)
        self.db_operations_total.labels(
            operation=kind,
            method=name,
            success="true" if success else "false",
        ).inc()

    def record_peer_request(self, operation: str, duration_seconds: float, success: bool) -> None:
        self.peer_request_duration.labels(operation=operation).observe(duration_seconds)
        self.peer_requests_total.labels(
            operation=operation,
            success="true" if success else "false",
        ).inc()

    def set_gauge(self, name: str, labels: Optional[Dict[str, str]], value: float) -> None:
        gauge = self._gauges.get(name)
        if gauge is None:
            raise KeyError(f"Unknown gauge: {name}")
        if labels:
            gauge.labels(**labels).set(value)
        else:
            gauge.set(value)

    def update_items_by_status(self, records: Iterable[Dict[str, Any]]) -> None:
        """Refresh the items-by-status gauge. Never raises."""
        try:
            counts = {status: 0 for status in TRACKED_STATUSES}
            for record in records:
                if record.get("status") in counts:
                    counts[record["status"]] += 1
            for status, count in counts.items():
                self.set_gauge("learning_items_by_status", {"status": status}, count)
        except Exception as e:
            logger.error(f"Error updating items by status metric: {e}")

    def update_pool_metrics(self, stats: PoolStats) -> None:
        """Refresh the connection pool gauges. Never raises."""
        try:
            self.set_gauge("db_connection_pool_size", None, stats.size)
            self.set_gauge("db_connection_pool_idle", None, stats.idle)
            self.set_gauge("db_connection_pool_active", None, stats.active)
        except Exception as e:
            logger.error(f"Error updating pool metrics: {e}")

    def snapshot(self) -> str:
        """All metrics in Prometheus text exposition format."""
        return generate_latest(self.registry).decode("utf-8")
