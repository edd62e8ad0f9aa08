from __future__ import annotations

import os
import sqlite3
from collections.abc import Generator
from datetime import date
from pathlib import Path

import pytest

from src.db.records import Member
from src.db.sqlite_client import get_connection, init_schema


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Generator[sqlite3.Connection, None, None]:
    os.environ.pop("DATABASE_URL", None)
    db_path = str(tmp_path / "test.db")
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def today() -> date:
    return date(2026, 3, 1)


@pytest.fixture
def formats() -> dict[str, int]:
    return {"6x6": 12, "7x7": 14, "8x8": 16, "9x9": 18}


@pytest.fixture
def make_member():
    def _make(index: int, handle: str | None = None) -> Member:
        return Member(id=str(1000 + index), display_name=f"Player {index}", handle=handle)

    return _make
