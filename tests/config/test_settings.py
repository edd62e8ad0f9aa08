from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from src.config.settings import Settings, ensure_runtime_dirs, load_settings, validate_settings


def _valid_settings(**overrides: object) -> Settings:
    defaults = {
        "bot_token": "123:abc",
        "database_url": "",
        "sqlite_db_path": "data/matchday.db",
        "log_level": "INFO",
        "timezone": "Europe/Moscow",
        "formats_config_path": "config/formats.yaml",
        "reminder_interval_hours": 2,
        "poll_timeout_seconds": 30,
        "telegram_api_base": "https://api.telegram.org",
    }
    defaults.update(overrides)
    return Settings(**cast(dict[str, Any], defaults))


def test_valid_settings_have_no_errors():
    assert validate_settings(_valid_settings()) == []


def test_validate_settings_requires_bot_token():
    errors = validate_settings(_valid_settings(bot_token=""))
    assert any("BOT_TOKEN" in e for e in errors)


def test_validate_settings_rejects_unknown_timezone():
    errors = validate_settings(_valid_settings(timezone="Mars/Olympus"))
    assert any("TIMEZONE" in e for e in errors)


def test_validate_settings_rejects_non_positive_reminder_interval():
    errors = validate_settings(_valid_settings(reminder_interval_hours=0))
    assert any("REMINDER_INTERVAL_HOURS" in e for e in errors)


def test_validate_settings_rejects_foreign_database_url():
    errors = validate_settings(_valid_settings(database_url="mysql://db"))
    assert any("DATABASE_URL" in e for e in errors)


def test_validate_settings_rejects_whitespace_formats_path():
    errors = validate_settings(_valid_settings(formats_config_path="   "))
    assert any("FORMATS_CONFIG_PATH" in e for e in errors)


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", " 42:xyz ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("REMINDER_INTERVAL_HOURS", "6")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = load_settings()
    assert settings.bot_token == "42:xyz"
    assert settings.log_level == "DEBUG"
    assert settings.reminder_interval_hours == 6
    assert settings.timezone == "Europe/Moscow"


def test_ensure_runtime_dirs_creates_sqlite_parent(tmp_path: Path):
    settings = _valid_settings(sqlite_db_path=str(tmp_path / "nested" / "bot.db"))
    ensure_runtime_dirs(settings)
    assert (tmp_path / "nested").is_dir()
