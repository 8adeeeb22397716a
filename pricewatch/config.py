"""Configuration loading for pricewatch.

Settings are read from ``~/.config/pricewatch/config.toml`` (or the path in
``PRICEWATCH_CONFIG``). Environment variables take precedence over the file
for the database path, log level and push credentials.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import toml
from pydantic import BaseModel, Field
from rich.logging import RichHandler

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pricewatch"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = DEFAULT_CONFIG_DIR / "pricewatch.db"


class DatabaseSettings(BaseModel):
    path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database file")


class QuoteSettings(BaseModel):
    source: Literal["yahoo", "paper"] = Field(default="yahoo")
    timeout_seconds: float = Field(default=10.0, gt=0)
    paper_prices: dict[str, float] = Field(default_factory=dict)


class CacheSettings(BaseModel):
    ttl_seconds: float = Field(default=300.0, gt=0)
    max_batch: int = Field(default=20, gt=0)
    serve_stale_on_rate_limit: bool = Field(default=False)


class RateLimitSettings(BaseModel):
    window_seconds: float = Field(default=60.0, gt=0)
    max_requests: int = Field(default=100, gt=0)


class AlertSettings(BaseModel):
    # False keeps an alert active after it fires so it can re-trigger once
    # the previous trigger has been marked read.
    deactivate_on_trigger: bool = Field(default=False)


class NotificationSettings(BaseModel):
    gateway: Literal["console", "fcm"] = Field(default="console")
    fcm_project_id: str = Field(default="")
    fcm_access_token: str = Field(default="")
    timeout_seconds: float = Field(default=10.0, gt=0)


class CycleSettings(BaseModel):
    interval_seconds: float = Field(default=60.0, gt=0)
    max_workers: int = Field(default=4, gt=0)
    stale_fallback: bool = Field(default=True)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO")


class Settings(BaseModel):
    """Top-level application settings."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    quotes: QuoteSettings = Field(default_factory=QuoteSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    cycle: CycleSettings = Field(default_factory=CycleSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def get_config_path() -> Path:
    """Return the config file path, honouring PRICEWATCH_CONFIG."""
    override = os.environ.get("PRICEWATCH_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


def _apply_env_overrides(raw: dict) -> dict:
    """Overlay environment variables onto the raw config dictionary."""
    env_map = {
        "PRICEWATCH_DB_PATH": ("database", "path"),
        "PRICEWATCH_LOG_LEVEL": ("logging", "level"),
        "FCM_PROJECT_ID": ("notifications", "fcm_project_id"),
        "FCM_ACCESS_TOKEN": ("notifications", "fcm_access_token"),
    }
    for env_name, (section, key) in env_map.items():
        value = os.environ.get(env_name)
        if value:
            raw.setdefault(section, {})[key] = value
    return raw


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from the TOML config file and environment.

    Args:
        path: Explicit config file. Defaults to ``get_config_path()``.

    Returns:
        Validated Settings. A missing file yields the defaults.

    Raises:
        toml.TomlDecodeError: If the file is not valid TOML.
        pydantic.ValidationError: If a value is out of range.
    """
    config_path = path or get_config_path()
    raw: dict = {}
    if config_path.exists():
        raw = toml.load(config_path)

    settings = Settings.model_validate(_apply_env_overrides(raw))
    db_path = settings.database.path.expanduser()
    return settings.model_copy(
        update={"database": DatabaseSettings(path=db_path)}
    )


def configure_logging(level: str = "INFO") -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
