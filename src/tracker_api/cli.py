# cli.py
import asyncio
import logging
import sys

import click
import uvicorn

from tracker_api.config.settings import Settings, get_settings
from tracker_api.errors import ConfigurationError
from tracker_api.logging_config import configure_logging
from tracker_api.main import create_app, create_metrics_app
from tracker_api.metrics import MetricsCollector
from tracker_api.modes import build_store

# Configure logging
logger = logging.getLogger(__name__)


@click.group()
def cli():
    """CLI commands for the Learning Tracker service"""
    pass


async def _serve(settings: Settings) -> None:
    metrics_collector = MetricsCollector()
    app = create_app(settings, metrics_collector)

    servers = [
        uvicorn.Server(uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_config=None,
            timeout_graceful_shutdown=settings.shutdown_timeout,
        ))
    ]
    if settings.metrics_port:
        metrics_app = create_metrics_app(app.state.composition, metrics_collector)
        servers.append(uvicorn.Server(uvicorn.Config(
            metrics_app,
            host=settings.host,
            port=settings.metrics_port,
            log_config=None,
            timeout_graceful_shutdown=settings.shutdown_timeout,
        )))
        logger.info(f"Metrics served on port {settings.metrics_port}")

    logger.info(f"Starting {settings.app_name} {settings.app_version} in {settings.mode} mode on port {settings.port}")
    await asyncio.gather(*(server.serve() for server in servers))


@cli.command()
@click.option("--mode", default=None, help="Deployment mode: combined, api-only or ui-proxy")
@click.option("--port", type=int, default=None, help="Port for the main server")
@click.option("--metrics-port", type=int, default=None, help="Serve /metrics on a separate port")
def serve(mode, port, metrics_port):
    """Run the web service"""
    overrides = {
        key: value
        for key, value in {"mode": mode, "port": port, "metrics_port": metrics_port}.items()
        if value is not None
    }
    # command-line options take precedence over the environment
    settings = Settings(**overrides) if overrides else get_settings()
    configure_logging(settings)

    try:
        asyncio.run(_serve(settings))
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}")
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  App: {settings.app_name} {settings.app_version}")
    for key, value in settings.get_environment_dict().items():
        print(f"  {key}: {value}")


@cli.command()
def init_db():
    """Create the item table/collection and indexes, then exit"""
    settings = get_settings()
    configure_logging(settings)

    async def _init():
        store = build_store(settings)
        try:
            await store.init()
        finally:
            await store.close()

    asyncio.run(_init())
    print(f"Initialized {settings.database_type} store")


if __name__ == "__main__":
    cli()
