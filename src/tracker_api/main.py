import logging
import time
from contextlib import asynccontextmanager
from textwrap import dedent
from typing import Callable, Optional

import requests
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute

from database.base import ItemStore
from database.exceptions import TrackerError

from tracker_api.config.settings import Settings, get_settings
from tracker_api.errors import (
    handle_broad_exceptions,
    handle_request_validation_errors,
    handle_tracker_errors,
)
from tracker_api.metrics import MetricsCollector
from tracker_api.middleware import http_metrics_middleware
from tracker_api.modes import Composition, build_store, compose
from tracker_api.routers import health, items, metrics, ui

# Set up logging
logger = logging.getLogger(__name__)

# Capability -> router. Only capabilities the mode does not mark absent are mounted.
ROUTE_TABLE = (
    ("items", items.router),
    ("ui", ui.router),
    ("health", health.router),
    ("metrics", metrics.router),
)


async def start_composition(composition: Composition) -> None:
    start_time = time.perf_counter()
    if composition.store is not None:
        try:
            await composition.store.init()
        except Exception as e:
            logger.error(f"Mode {composition.mode.value}: {composition.store.database_type} store failed to start: {e}")
            raise
        logger.info(
            f"Mode {composition.mode.value}: {composition.store.database_type} store ready "
            f"in {time.perf_counter() - start_time:.3f}s"
        )
    else:
        logger.info(f"Mode {composition.mode.value}: forwarding item operations to {composition.peer.base_url}")


async def stop_composition(composition: Composition) -> None:
    if composition.store is not None:
        await composition.store.close()
    if composition.peer is not None:
        composition.peer.close()
    logger.info(f"Mode {composition.mode.value}: shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    metrics_collector: Optional[MetricsCollector] = None,
    peer_session: Optional[requests.Session] = None,
    store_factory: Callable[[Settings], ItemStore] = build_store,
) -> FastAPI:
    """Create the FastAPI application for the configured mode.

    Raises:
        ConfigurationError: if the mode or its required settings are invalid
    """
    settings = settings or get_settings()
    metrics_collector = metrics_collector or MetricsCollector()
    composition = compose(settings, metrics_collector, store_factory=store_factory, peer_session=peer_session)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await start_composition(composition)
        yield
        await stop_composition(composition)

    app = FastAPI(
        title="Learning Tracker",
        summary="Track learning items through todo, progress and completed",
        version=settings.app_version,
        description=dedent(
            f"""\
        Running in **{composition.mode.value}** mode.

        | Mode | Items | UI |
        | --- | --- | --- |
        | combined | local store | yes |
        | api-only | local store | no |
        | ui-proxy | peer API | yes |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.metrics = metrics_collector
    app.state.composition = composition

    for capability, router in ROUTE_TABLE:
        if composition.serves(capability):
            app.include_router(router)
            logger.info(f"Mounted {capability} routes ({composition.fulfillment(capability).value})")

    app.add_exception_handler(TrackerError, handle_tracker_errors)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.middleware("http")(handle_broad_exceptions)
    # added last so it wraps everything, including the 500 fallback
    app.middleware("http")(http_metrics_middleware(metrics_collector))

    return app


def create_metrics_app(composition: Composition, metrics_collector: MetricsCollector) -> FastAPI:
    """Standalone app exposing /metrics and its own /health on the metrics port."""
    app = FastAPI(title="Learning Tracker metrics", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.metrics = metrics_collector
    app.state.composition = composition
    app.include_router(metrics.router)

    @app.get("/health", include_in_schema=False)
    async def metrics_health():
        return {"status": "healthy", "service": "metrics"}

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    from tracker_api.logging_config import configure_logging

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
