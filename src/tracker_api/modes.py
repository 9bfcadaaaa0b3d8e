"""
Deployment mode composition.

A process runs in exactly one mode, chosen at startup:

| Mode     | items served by | UI  |
|----------|-----------------|-----|
| combined | local store     | yes |
| api-only | local store     | no  |
| ui-proxy | peer API        | yes |

The mode resolves to a capability map (capability -> fulfillment) which the
application factory turns into its route table. Route handlers never look at
the mode; they use whatever ``Composition.items`` provides.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Mapping, Optional

import requests

from database.base import ItemOperations, ItemStore
from database.local import get_item_store

from tracker_api.adapters.instrumented_store import InstrumentedStore
from tracker_api.adapters.peer_client import PeerClient
from tracker_api.config.settings import Settings
from tracker_api.errors import ConfigurationError
from tracker_api.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    COMBINED = "combined"
    API_ONLY = "api-only"
    UI_PROXY = "ui-proxy"


class Fulfillment(str, Enum):
    LOCAL = "local"
    DELEGATED = "delegated"
    ABSENT = "absent"


CAPABILITY_TABLE: Dict[Mode, Dict[str, Fulfillment]] = {
    Mode.COMBINED: {
        "items": Fulfillment.LOCAL,
        "ui": Fulfillment.LOCAL,
        "health": Fulfillment.LOCAL,
        "metrics": Fulfillment.LOCAL,
    },
    Mode.API_ONLY: {
        "items": Fulfillment.LOCAL,
        "ui": Fulfillment.ABSENT,
        "health": Fulfillment.LOCAL,
        "metrics": Fulfillment.LOCAL,
    },
    Mode.UI_PROXY: {
        "items": Fulfillment.DELEGATED,
        "ui": Fulfillment.LOCAL,
        "health": Fulfillment.LOCAL,
        "metrics": Fulfillment.LOCAL,
    },
}


def resolve_mode(value: str) -> Mode:
    """Map the configured mode selector onto a Mode.

    Raises:
        ConfigurationError: for anything other than combined, api-only or ui-proxy
    """
    try:
        return Mode(value)
    except ValueError:
        valid_modes = [mode.value for mode in Mode]
        raise ConfigurationError(f"Invalid mode: {value!r}. Must be one of {valid_modes}")


def build_store(settings: Settings) -> ItemStore:
    return get_item_store(
        database_type=settings.database_type,
        db_path=settings.database_path,
        mongodb_uri=settings.mongodb_uri,
        mongodb_database=settings.mongodb_database,
        pool_size=settings.db_pool_size,
        acquire_timeout=settings.db_pool_acquire_timeout,
    )


@dataclass(frozen=True)
class Composition:
    """The resolved capability set of this process."""

    mode: Mode
    items: ItemOperations
    capabilities: Mapping[str, Fulfillment] = field(default_factory=dict)
    store: Optional[InstrumentedStore] = None
    peer: Optional[PeerClient] = None

    def fulfillment(self, capability: str) -> Fulfillment:
        return self.capabilities.get(capability, Fulfillment.ABSENT)

    def serves(self, capability: str) -> bool:
        return self.fulfillment(capability) is not Fulfillment.ABSENT


def compose(
    settings: Settings,
    metrics: MetricsCollector,
    store_factory: Callable[[Settings], ItemStore] = build_store,
    peer_session: Optional[requests.Session] = None,
) -> Composition:
    """Resolve the mode and build the provider for item operations.

    Raises:
        ConfigurationError: invalid mode, ui-proxy without a peer address, or
            an unusable store configuration
    """
    mode = resolve_mode(settings.mode)
    capabilities = dict(CAPABILITY_TABLE[mode])
    if settings.metrics_port:
        # served by the dedicated metrics app instead
        capabilities["metrics"] = Fulfillment.ABSENT

    if capabilities["items"] is Fulfillment.DELEGATED:
        if not settings.api_base_url:
            raise ConfigurationError("API_BASE_URL is required in ui-proxy mode")
        peer = PeerClient(
            base_url=settings.api_base_url,
            timeout=settings.peer_timeout,
            session=peer_session,
            metrics=metrics,
        )
        logger.info(f"Mode {mode.value}: item operations delegated to {settings.api_base_url}")
        return Composition(mode=mode, items=peer, capabilities=capabilities, peer=peer)

    try:
        store = InstrumentedStore(store_factory(settings), metrics)
    except ValueError as e:
        raise ConfigurationError(f"Invalid database configuration: {e}") from e

    logger.info(f"Mode {mode.value}: item operations served by local {store.database_type} store")
    return Composition(mode=mode, items=store, capabilities=capabilities, store=store)
