from __future__ import annotations

import app
from src.engine.errors import TransportError


class _Api:
    def __init__(self, updates) -> None:
        self.updates = updates
        self.calls: list[tuple[int | None, int]] = []

    def get_updates(self, offset, timeout_seconds):
        self.calls.append((offset, timeout_seconds))
        return self.updates


def test_poll_once_advances_offset_past_failing_update(mocker):
    dispatcher = mocker.Mock()
    dispatcher.handle_update.side_effect = [RuntimeError("bad"), None]
    api = _Api([{"update_id": 5}, {"update_id": 6}])
    assert app.poll_once(dispatcher, api, None, 30) == 7
    assert dispatcher.handle_update.call_count == 2
    assert api.calls == [(None, 30)]


def test_poll_once_keeps_offset_when_idle(mocker):
    assert app.poll_once(mocker.Mock(), _Api([]), 12, 0) == 12


def test_check_reports_readiness(mocker, tmp_path, capsys, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    api = mocker.patch("app.TelegramApi").return_value
    api.get_me.side_effect = TransportError("offline")
    settings = mocker.Mock(
        database_url="",
        sqlite_db_path=str(tmp_path / "bot.db"),
        bot_token="t",
        telegram_api_base="https://api.telegram.org",
    )
    assert app.check(settings) == 0
    out = capsys.readouterr().out
    assert '"liveness": {"ok": true}' in out
    assert '"telegram": "degraded' in out
