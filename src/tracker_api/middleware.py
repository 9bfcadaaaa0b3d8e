"""HTTP request instrumentation."""

import logging
import re
import time

from fastapi import Request

from tracker_api.metrics import MetricsCollector

logger = logging.getLogger(__name__)

# Label for requests no route matched, e.g. 404s
UNMATCHED_ROUTE = "unmatched"

_ID_SEGMENT = re.compile(r"^(\d+|\{[^/]+\})$")


def normalize_route(path: str) -> str:
    """Replace numeric and ``{param}`` path segments with ``:id``.

    >>> normalize_route("/items/42/resolve")
    '/items/:id/resolve'
    >>> normalize_route("/items/{item_id}/resolve")
    '/items/:id/resolve'
    """
    segments = [":id" if _ID_SEGMENT.match(segment) else segment for segment in path.split("/")]
    return "/".join(segments) or "/"


def route_label(request: Request) -> str:
    """Label a request by the template of the route that matched it.

    Only templates of mounted routes can appear, so the label set is bounded
    whatever paths clients send.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if not template:
        return UNMATCHED_ROUTE
    return normalize_route(template)


def http_metrics_middleware(metrics: MetricsCollector):
    """Build a middleware recording exactly one HTTP sample per inbound request."""

    async def record_http_metrics(request: Request, call_next):
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            try:
                metrics.record_http_request(
                    request.method,
                    route_label(request),
                    status_code,
                    time.perf_counter() - start_time,
                )
            except Exception as e:
                logger.error(f"Failed to record HTTP metrics: {e}")

    return record_http_metrics
