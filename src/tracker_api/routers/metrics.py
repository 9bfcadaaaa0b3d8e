import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from tracker_api.metrics import MetricsCollector
from tracker_api.modes import Composition

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metrics"])


async def refresh_gauges(metrics: MetricsCollector, composition: Composition) -> None:
    """Refresh scrape-time gauges from the local store, if this process has one.

    Reads go to the uninstrumented store so scrapes do not show up as store traffic.
    """
    if composition.store is None:
        return
    try:
        records = await composition.store.store.list()
        metrics.update_items_by_status(records)
    except Exception as e:
        logger.error(f"Error refreshing item gauges: {e}")
    metrics.update_pool_metrics(composition.store.pool_stats())


async def render_metrics(request: Request) -> PlainTextResponse:
    metrics: MetricsCollector = request.app.state.metrics
    await refresh_gauges(metrics, request.app.state.composition)
    return PlainTextResponse(metrics.snapshot(), media_type=metrics.content_type)


@router.get("/metrics", response_class=PlainTextResponse)
async def get_metrics(request: Request):
    """Prometheus text exposition of all process metrics."""
    return await render_metrics(request)
