from __future__ import annotations

from src.engine.errors import TransportError
from src.utils.health import liveness, readiness


class _HealthyApi:
    def get_me(self) -> dict:
        return {"id": 1, "is_bot": True}


class _BrokenApi:
    def get_me(self) -> dict:
        raise TransportError("Unauthorized")


def test_liveness_ok():
    assert liveness()["ok"] is True


def test_readiness_ok_with_sqlite_and_telegram(sqlite_db):
    status = readiness(sqlite_db, _HealthyApi())
    assert status["ok"] is True
    assert status["dependencies"] == {"database": "ready", "telegram": "ready"}


def test_telegram_outage_only_degrades(sqlite_db):
    status = readiness(sqlite_db, _BrokenApi())
    assert status["ok"] is True
    assert status["dependencies"]["telegram"].startswith("degraded")


def test_readiness_fails_without_database():
    status = readiness(None, _HealthyApi())
    assert status["ok"] is False
    assert "error" in status["dependencies"]["database"]


def test_readiness_reports_closed_database(sqlite_db):
    sqlite_db.close()
    status = readiness(sqlite_db, None)
    assert status["ok"] is False
    assert status["dependencies"]["telegram"] == "degraded: unavailable"
