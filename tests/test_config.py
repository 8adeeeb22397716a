"""Tests for configuration loading.

**Feature: pricewatch**
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from pricewatch.config import Settings, get_config_path, load_settings
from pricewatch.engine.builder import build_engine, build_gateway, build_source
from pricewatch.errors import GatewayMisconfigured
from pricewatch.gateways.console import ConsoleGateway
from pricewatch.sources.paper import PaperQuoteSource
from pricewatch.sources.yahoo import YahooQuoteSource

CONFIG = """
[database]
path = "{db}"

[quotes]
source = "paper"

[quotes.paper_prices]
AAPL = 190.5

[cache]
ttl_seconds = 120
max_batch = 5

[rate_limit]
max_requests = 10

[alerts]
deactivate_on_trigger = true
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PRICEWATCH_CONFIG",
        "PRICEWATCH_DB_PATH",
        "PRICEWATCH_LOG_LEVEL",
        "FCM_PROJECT_ID",
        "FCM_ACCESS_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    """Settings come from TOML with environment overrides on top."""

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        settings = load_settings(tmp_path / "absent.toml")

        assert settings.quotes.source == "yahoo"
        assert settings.cache.ttl_seconds == 300
        assert settings.cache.max_batch == 20
        assert settings.rate_limit.window_seconds == 60
        assert settings.rate_limit.max_requests == 100
        assert settings.alerts.deactivate_on_trigger is False
        assert settings.notifications.gateway == "console"

    def test_file_values(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text(CONFIG.format(db=tmp_path / "pw.db"))

        settings = load_settings(path)

        assert settings.database.path == tmp_path / "pw.db"
        assert settings.quotes.source == "paper"
        assert settings.quotes.paper_prices == {"AAPL": 190.5}
        assert settings.cache.ttl_seconds == 120
        assert settings.cache.max_batch == 5
        assert settings.rate_limit.max_requests == 10
        assert settings.alerts.deactivate_on_trigger is True

    def test_env_overrides(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text(CONFIG.format(db=tmp_path / "pw.db"))
        monkeypatch.setenv("PRICEWATCH_DB_PATH", str(tmp_path / "other.db"))
        monkeypatch.setenv("PRICEWATCH_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("FCM_PROJECT_ID", "proj")
        monkeypatch.setenv("FCM_ACCESS_TOKEN", "tok")

        settings = load_settings(path)

        assert settings.database.path == tmp_path / "other.db"
        assert settings.logging.level == "DEBUG"
        assert settings.notifications.fcm_project_id == "proj"
        assert settings.notifications.fcm_access_token == "tok"

    def test_config_path_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("PRICEWATCH_CONFIG", str(tmp_path / "custom.toml"))
        assert get_config_path() == tmp_path / "custom.toml"

    def test_out_of_range_rejected(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text("[cache]\nttl_seconds = -1\n")
        with pytest.raises(ValidationError):
            load_settings(path)

    def test_home_expanded(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text('[database]\npath = "~/pw.db"\n')
        assert load_settings(path).database.path == Path.home() / "pw.db"


class TestBuilders:
    """Settings select the quote source and push gateway."""

    def test_default_builders(self):
        settings = Settings()
        assert isinstance(build_gateway(settings), ConsoleGateway)
        source = build_source(settings)
        assert isinstance(source, YahooQuoteSource)
        source.close()

    def test_fcm_without_credentials(self):
        settings = Settings.model_validate({"notifications": {"gateway": "fcm"}})
        with pytest.raises(GatewayMisconfigured):
            build_gateway(settings)

    def test_build_engine_shares_store(self, tmp_path: Path):
        settings = Settings.model_validate(
            {
                "database": {"path": str(tmp_path / "pw.db")},
                "quotes": {"source": "paper", "paper_prices": {"AAPL": 201.0}},
            }
        )

        engine = build_engine(settings)

        assert isinstance(engine.source, PaperQuoteSource)
        assert engine.price_cache.store is engine.store
        assert engine.recorder.store is engine.store
        assert engine.cycle.price_cache is engine.price_cache
        assert engine.price_cache.get_price("AAPL").price == 201.0
        engine.close()
