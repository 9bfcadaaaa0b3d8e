from click.testing import CliRunner

from tracker_api.cli import cli
from tracker_api.config.settings import get_settings


def test_show_config_masks_secrets(monkeypatch):
    monkeypatch.setenv("MODE", "api-only")
    monkeypatch.setenv("MONGODB_URI", "mongodb://user:secret@db:27017/tracker")
    get_settings.cache_clear()

    result = CliRunner().invoke(cli, ["show-config"])
    get_settings.cache_clear()

    assert result.exit_code == 0
    assert "MODE: api-only" in result.output
    assert "secret" not in result.output


def test_serve_exits_on_configuration_error(monkeypatch):
    monkeypatch.delenv("API_BASE_URL", raising=False)

    result = CliRunner().invoke(cli, ["serve", "--mode", "ui-proxy"])

    assert result.exit_code == 1
    assert "API_BASE_URL is required in ui-proxy mode" in result.output


def test_init_db_creates_schema(monkeypatch, db_path):
    monkeypatch.setenv("DB_TYPE", "sqlite")
    monkeypatch.setenv("DB_NAME", db_path)
    get_settings.cache_clear()

    result = CliRunner().invoke(cli, ["init-db"])
    get_settings.cache_clear()

    assert result.exit_code == 0
    assert "Initialized sqlite store" in result.output
