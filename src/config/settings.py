from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dateutil import tz

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    bot_token: str
    database_url: str
    sqlite_db_path: str
    log_level: str
    timezone: str
    formats_config_path: str
    reminder_interval_hours: int
    poll_timeout_seconds: int
    telegram_api_base: str


def load_settings() -> Settings:
    return Settings(
        bot_token=os.getenv("BOT_TOKEN", "").strip(),
        database_url=os.getenv("DATABASE_URL", "").strip(),
        sqlite_db_path=os.getenv("SQLITE_DB_PATH", "data/matchday.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        timezone=os.getenv("TIMEZONE", "Europe/Moscow").strip(),
        formats_config_path=os.getenv("FORMATS_CONFIG_PATH", "config/formats.yaml"),
        reminder_interval_hours=_get_int_env("REMINDER_INTERVAL_HOURS", 2),
        poll_timeout_seconds=_get_int_env("POLL_TIMEOUT_SECONDS", 30),
        telegram_api_base=os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/"),
    )


def validate_settings(settings: Settings) -> list[str]:
    errors: list[str] = []
    if not settings.bot_token:
        errors.append("BOT_TOKEN is required")
    if settings.log_level not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(sorted(LOG_LEVELS))}")
    if not settings.timezone or tz.gettz(settings.timezone) is None:
        errors.append("TIMEZONE must be a valid IANA timezone, e.g. Europe/Moscow")
    if not settings.formats_config_path.strip():
        errors.append("FORMATS_CONFIG_PATH is required")
    if settings.reminder_interval_hours <= 0:
        errors.append("REMINDER_INTERVAL_HOURS must be > 0")
    if settings.poll_timeout_seconds < 0:
        errors.append("POLL_TIMEOUT_SECONDS must be >= 0")
    if "://" not in settings.telegram_api_base:
        errors.append("TELEGRAM_API_BASE must include scheme, e.g. https://")
    if settings.database_url and not settings.database_url.startswith(
        ("postgres://", "postgresql://")
    ):
        errors.append("DATABASE_URL must start with postgres:// or postgresql://")
    return errors


def ensure_runtime_dirs(settings: Settings) -> None:
    if not settings.database_url:
        Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
