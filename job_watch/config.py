"""YAML config loading and validation."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class FetchConfig:
    timeout_seconds: float = 12.0
    max_bytes: int = int(1.5 * 1024 * 1024)
    max_redirects: int = 5
    max_rate_limit_retries: int = 3
    rate_limit_wait_ms: int = 800
    rate_limit_max_wait_ms: int = 2000
    connect_retries: int = 2


@dataclass
class ScrapingBeeConfig:
    api_key: str = ""
    api_url: str = "https://app.scrapingbee.com/api/v1/"
    render_js: bool = False
    always: bool = False  # skip direct fetching entirely

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class ZyteConfig:
    api_key: str = ""
    api_url: str = "https://api.zyte.com/v1/extract"
    browser_html: bool = True
    structured_data: bool = True
    extract_type: str = "jobPosting"
    always: bool = False
    debug: bool = False

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class ScheduleConfig:
    enabled: bool = True
    hour: int = 9
    minute: int = 0
    timezone: str = ""  # empty = scheduler's local zone


@dataclass
class AppConfig:
    fetch: FetchConfig = field(default_factory=FetchConfig)
    scrapingbee: ScrapingBeeConfig = field(default_factory=ScrapingBeeConfig)
    zyte: ZyteConfig = field(default_factory=ZyteConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    stage: str = "dev"
    database_url: str = ""
    data_dir: str = "data"
    log_dir: str = "logs"

    def __post_init__(self):
        if not self.database_url:
            self.database_url = default_database_url(self.data_dir, self.stage)


def default_database_url(data_dir: str, stage: str) -> str:
    return f"sqlite:///{Path(data_dir) / f'job_watch.{stage}.db'}"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ[name])
    except (KeyError, ValueError):
        return default


def _normalize_stage(value: str) -> str:
    value = (value or "dev").strip().lower()
    return "production" if value in ("prod", "production") else "dev"


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load configuration from a YAML file, with environment overrides."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Copy config.example.yaml to config.yaml and fill in your settings."
        )

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    defaults = FetchConfig()
    fetch_raw = raw.get("fetch", {})
    fetch = FetchConfig(
        timeout_seconds=float(fetch_raw.get("timeout_seconds", defaults.timeout_seconds)),
        max_bytes=int(fetch_raw.get("max_bytes", defaults.max_bytes)),
        max_redirects=int(fetch_raw.get("max_redirects", defaults.max_redirects)),
        max_rate_limit_retries=int(fetch_raw.get("max_rate_limit_retries", defaults.max_rate_limit_retries)),
        rate_limit_wait_ms=int(fetch_raw.get("rate_limit_wait_ms", defaults.rate_limit_wait_ms)),
        rate_limit_max_wait_ms=int(fetch_raw.get("rate_limit_max_wait_ms", defaults.rate_limit_max_wait_ms)),
        connect_retries=int(fetch_raw.get("connect_retries", defaults.connect_retries)),
    )

    # Provider secrets and switches: env vars take precedence
    bee_raw = raw.get("scrapingbee", {})
    scrapingbee = ScrapingBeeConfig(
        api_key=os.environ.get("SCRAPINGBEE_API_KEY", bee_raw.get("api_key", "")),
        api_url=os.environ.get("SCRAPINGBEE_API_URL", bee_raw.get("api_url", ScrapingBeeConfig.api_url)),
        render_js=_env_bool("SCRAPINGBEE_RENDER_JS", bee_raw.get("render_js", False)),
        always=_env_bool("SCRAPINGBEE_ALWAYS", bee_raw.get("always", False)),
    )

    zyte_raw = raw.get("zyte", {})
    zyte = ZyteConfig(
        api_key=os.environ.get("ZYTE_API_KEY", zyte_raw.get("api_key", "")),
        api_url=os.environ.get("ZYTE_API_URL", zyte_raw.get("api_url", ZyteConfig.api_url)),
        browser_html=_env_bool("ZYTE_BROWSER_HTML", zyte_raw.get("browser_html", True)),
        structured_data=_env_bool("ZYTE_STRUCTURED_DATA", zyte_raw.get("structured_data", True)),
        extract_type=os.environ.get("ZYTE_EXTRACT_TYPE", zyte_raw.get("extract_type", "jobPosting")),
        always=_env_bool("ZYTE_ALWAYS", zyte_raw.get("always", False)),
        debug=_env_bool("ZYTE_DEBUG", zyte_raw.get("debug", False)),
    )

    schedule_raw = raw.get("schedule", {})
    hour = _env_int("CRON_HOUR", schedule_raw.get("hour", 9))
    schedule = ScheduleConfig(
        enabled=_env_bool("ENABLE_INTERNAL_CRON", schedule_raw.get("enabled", True)),
        hour=min(23, max(0, hour)),
        minute=min(59, max(0, int(schedule_raw.get("minute", 0)))),
        timezone=os.environ.get("CRON_TZ", schedule_raw.get("timezone", "")),
    )

    stage = _normalize_stage(os.environ.get("STAGE", raw.get("stage", "dev")))
    data_dir = raw.get("data_dir", "data")

    return AppConfig(
        fetch=fetch,
        scrapingbee=scrapingbee,
        zyte=zyte,
        schedule=schedule,
        stage=stage,
        database_url=os.environ.get("DATABASE_URL", raw.get("database_url", "")),
        data_dir=data_dir,
        log_dir=raw.get("log_dir", "logs"),
    )


def validate_config(config: AppConfig) -> list[str]:
    """Return list of validation warnings (empty = OK)."""
    warnings = []

    if config.zyte.always and not config.zyte.configured:
        warnings.append("Zyte set to always-use but no Zyte API key configured - it will be ignored")

    if config.scrapingbee.always and not config.scrapingbee.configured:
        warnings.append("ScrapingBee set to always-use but no ScrapingBee API key configured - it will be ignored")

    if config.zyte.always and config.scrapingbee.always and config.zyte.configured:
        warnings.append("Both providers set to always-use - Zyte takes precedence")

    if not config.zyte.configured and not config.scrapingbee.configured:
        warnings.append("No fetch provider configured - JavaScript-heavy career pages may yield no jobs")

    if config.fetch.max_redirects < 0 or config.fetch.max_rate_limit_retries < 0:
        warnings.append("Negative redirect or rate-limit budget - requests will fail on the first hop")

    if config.fetch.timeout_seconds <= 0:
        warnings.append("Fetch timeout must be positive")

    return warnings
