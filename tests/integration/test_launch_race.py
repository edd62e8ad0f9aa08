from __future__ import annotations

import threading
from pathlib import Path

import pytest

from src.db.sqlite_client import get_connection, init_schema
from src.engine.errors import SessionAlreadyActive
from src.sessions.manager import list_active_sessions, record_vote_and_maybe_close, start_session

ROOM_ID = "-1001234567890"


@pytest.mark.integration
def test_concurrent_launches_leave_one_active_session(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    db_path = str(tmp_path / "race.db")
    setup = get_connection(db_path)
    init_schema(setup)

    barrier = threading.Barrier(4)
    outcomes: list[str] = []
    lock = threading.Lock()

    def _launch(author_id: str) -> None:
        conn = get_connection(db_path)
        try:
            barrier.wait()
            start_session(conn, ROOM_ID, author_id, "6x6")
            result = "started"
        except SessionAlreadyActive:
            result = "conflict"
        finally:
            conn.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=_launch, args=(str(i),)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["conflict", "conflict", "conflict", "started"]
    assert len(list_active_sessions(setup)) == 1
    setup.close()


@pytest.mark.integration
def test_quota_close_reported_once_across_connections(tmp_path: Path, monkeypatch, make_member):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    db_path = str(tmp_path / "quota.db")
    first = get_connection(db_path)
    init_schema(first)
    second = get_connection(db_path)
    session = start_session(first, ROOM_ID, "100", "6x6", formats={"6x6": 2})

    record_vote_and_maybe_close(first, session.id, make_member(1), "yes")
    closing = record_vote_and_maybe_close(second, session.id, make_member(2), "yes")

    assert closing.closed is True
    assert list_active_sessions(first) == []
    first.close()
    second.close()
