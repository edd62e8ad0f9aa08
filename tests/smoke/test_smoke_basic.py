from __future__ import annotations

import pytest

from src.config.settings import Settings, validate_settings


@pytest.mark.smoke
def test_settings_validation_flags_missing_keys():
    settings = Settings(
        bot_token="",
        database_url="",
        sqlite_db_path="data/matchday.db",
        log_level="LOUD",
        timezone="",
        formats_config_path="config/formats.yaml",
        reminder_interval_hours=2,
        poll_timeout_seconds=30,
        telegram_api_base="api.telegram.org",
    )
    errors = validate_settings(settings)
    assert "BOT_TOKEN is required" in errors
    assert any("LOG_LEVEL" in e for e in errors)
    assert any("TIMEZONE" in e for e in errors)
    assert any("TELEGRAM_API_BASE" in e for e in errors)
