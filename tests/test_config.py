"""Tests for configuration loading."""

import os
import tempfile

import pytest
import yaml

from job_watch.config import (
    AppConfig,
    FetchConfig,
    ScrapingBeeConfig,
    ZyteConfig,
    default_database_url,
    load_config,
    validate_config,
)

ENV_VARS = [
    "SCRAPINGBEE_API_KEY", "SCRAPINGBEE_API_URL", "SCRAPINGBEE_RENDER_JS", "SCRAPINGBEE_ALWAYS",
    "ZYTE_API_KEY", "ZYTE_API_URL", "ZYTE_BROWSER_HTML", "ZYTE_STRUCTURED_DATA", "ZYTE_EXTRACT_TYPE",
    "ZYTE_ALWAYS", "ZYTE_DEBUG", "CRON_HOUR", "CRON_TZ", "ENABLE_INTERNAL_CRON", "STAGE", "DATABASE_URL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def write_config(config_data):
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(config_data, f)
        return f.name


@pytest.fixture
def config_file():
    """Create a temporary config file."""
    path = write_config({
        "stage": "dev",
        "data_dir": "/tmp/jw",
        "fetch": {"timeout_seconds": 5, "max_redirects": 2},
        "scrapingbee": {"api_key": "bee_key", "render_js": True},
        "zyte": {"api_key": "zyte_key", "always": True},
        "schedule": {"hour": 7, "minute": 30, "timezone": "Europe/Berlin"},
    })
    yield path
    os.unlink(path)


class TestLoadConfig:
    def test_loads_valid_config(self, config_file):
        config = load_config(config_file)
        assert config.fetch.timeout_seconds == 5.0
        assert config.fetch.max_redirects == 2
        assert config.fetch.max_rate_limit_retries == 3
        assert config.scrapingbee.api_key == "bee_key"
        assert config.scrapingbee.render_js is True
        assert config.zyte.always is True
        assert (config.schedule.hour, config.schedule.minute) == (7, 30)
        assert config.schedule.timezone == "Europe/Berlin"
        assert config.database_url == "sqlite:////tmp/jw/job_watch.dev.db"

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_config("nonexistent.yaml")

    def test_empty_file_uses_defaults(self):
        path = write_config({})
        try:
            config = load_config(path)
            assert config.fetch == FetchConfig()
            assert not config.zyte.configured
            assert not config.scrapingbee.configured
            assert config.schedule.hour == 9
            assert config.stage == "dev"
        finally:
            os.unlink(path)

    def test_env_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("ZYTE_API_KEY", "env_zyte")
        monkeypatch.setenv("ZYTE_ALWAYS", "false")
        monkeypatch.setenv("SCRAPINGBEE_ALWAYS", "yes")
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/jobs")

        config = load_config(config_file)
        assert config.zyte.api_key == "env_zyte"
        assert config.zyte.always is False
        assert config.scrapingbee.always is True
        assert config.database_url == "postgresql://db/jobs"

    def test_cron_hour_clamped(self, config_file, monkeypatch):
        monkeypatch.setenv("CRON_HOUR", "42")
        assert load_config(config_file).schedule.hour == 23

    def test_bad_cron_hour_keeps_file_value(self, config_file, monkeypatch):
        monkeypatch.setenv("CRON_HOUR", "soon")
        assert load_config(config_file).schedule.hour == 7

    def test_stage_normalized(self, config_file, monkeypatch):
        monkeypatch.setenv("STAGE", "PROD")
        config = load_config(config_file)
        assert config.stage == "production"
        assert config.database_url.endswith("job_watch.production.db")


class TestDefaults:
    def test_default_database_url(self):
        assert default_database_url("data", "dev") == "sqlite:///data/job_watch.dev.db"

    def test_explicit_database_url_kept(self):
        assert AppConfig(database_url="sqlite:///x.db").database_url == "sqlite:///x.db"

    def test_fetch_limits(self):
        fetch = FetchConfig()
        assert fetch.timeout_seconds == 12.0
        assert fetch.max_bytes == 1572864
        assert fetch.max_redirects == 5


class TestValidateConfig:
    def test_configured_providers_ok(self):
        config = AppConfig(zyte=ZyteConfig(api_key="z"), scrapingbee=ScrapingBeeConfig(api_key="b"))
        assert validate_config(config) == []

    def test_no_providers_warns(self):
        warnings = validate_config(AppConfig())
        assert any("No fetch provider configured" in w for w in warnings)

    def test_always_without_key_warns(self):
        warnings = validate_config(AppConfig(zyte=ZyteConfig(always=True)))
        assert any("always-use" in w for w in warnings)

    def test_bad_fetch_limits_warn(self):
        config = AppConfig(
            zyte=ZyteConfig(api_key="z"),
            fetch=FetchConfig(timeout_seconds=0, max_redirects=-1),
        )
        warnings = validate_config(config)
        assert any("Negative" in w for w in warnings)
        assert any("timeout" in w for w in warnings)
