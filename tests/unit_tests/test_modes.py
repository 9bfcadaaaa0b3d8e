import pytest

from database.sqlite_store import SQLiteItemStore
from tracker_api.adapters.instrumented_store import InstrumentedStore
from tracker_api.adapters.peer_client import PeerClient
from tracker_api.errors import ConfigurationError
from tracker_api.modes import CAPABILITY_TABLE, Fulfillment, Mode, compose, resolve_mode
from tests.fixtures.app_fixtures import FakePeerSession, make_settings


def _no_store(settings):
    raise AssertionError("ui-proxy must not construct a store")


@pytest.mark.parametrize("value, mode", [
    ("combined", Mode.COMBINED),
    ("api-only", Mode.API_ONLY),
    ("ui-proxy", Mode.UI_PROXY),
])
def test_resolve_mode(value, mode):
    assert resolve_mode(value) is mode


def test_resolve_mode_rejects_unknown():
    with pytest.raises(ConfigurationError, match="Invalid mode"):
        resolve_mode("standalone")


def test_capability_table():
    assert CAPABILITY_TABLE[Mode.COMBINED]["ui"] is Fulfillment.LOCAL
    assert CAPABILITY_TABLE[Mode.API_ONLY]["ui"] is Fulfillment.ABSENT
    assert CAPABILITY_TABLE[Mode.UI_PROXY]["items"] is Fulfillment.DELEGATED
    for capabilities in CAPABILITY_TABLE.values():
        assert capabilities["health"] is Fulfillment.LOCAL


def test_combined_uses_instrumented_local_store(db_path, metrics_collector):
    composition = compose(make_settings(mode="combined", database_path=db_path), metrics_collector)

    assert isinstance(composition.items, InstrumentedStore)
    assert isinstance(composition.store.store, SQLiteItemStore)
    assert composition.peer is None
    assert composition.serves("ui")


def test_api_only_has_no_ui(db_path, metrics_collector):
    composition = compose(make_settings(mode="api-only", database_path=db_path), metrics_collector)

    assert not composition.serves("ui")
    assert composition.serves("items")
    assert composition.fulfillment("items") is Fulfillment.LOCAL


def test_ui_proxy_delegates_without_a_store(metrics_collector):
    session = FakePeerSession()
    settings = make_settings(mode="ui-proxy", api_base_url="http://api:3000/")

    composition = compose(settings, metrics_collector, store_factory=_no_store, peer_session=session)

    assert isinstance(composition.items, PeerClient)
    assert composition.items.base_url == "http://api:3000"
    assert composition.store is None
    assert composition.fulfillment("items") is Fulfillment.DELEGATED


def test_ui_proxy_requires_api_base_url(metrics_collector):
    with pytest.raises(ConfigurationError, match="API_BASE_URL"):
        compose(make_settings(mode="ui-proxy"), metrics_collector, store_factory=_no_store)


def test_separate_metrics_port_removes_metrics_route(db_path, metrics_collector):
    settings = make_settings(mode="combined", database_path=db_path, metrics_port=9100)

    composition = compose(settings, metrics_collector)

    assert not composition.serves("metrics")


def test_bad_store_configuration_is_a_configuration_error(metrics_collector):
    settings = make_settings(mode="api-only", database_type="mongodb", mongodb_uri=None)

    with pytest.raises(ConfigurationError, match="Invalid database configuration"):
        compose(settings, metrics_collector)
