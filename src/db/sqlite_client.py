from __future__ import annotations

import os
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS members (
    id TEXT PRIMARY KEY,
    display_name TEXT NOT NULL DEFAULT '',
    handle TEXT,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS room_members (
    room_id TEXT NOT NULL,
    member_id TEXT NOT NULL REFERENCES members(id) ON DELETE CASCADE,
    joined_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (room_id, member_id)
);

CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    room_id TEXT NOT NULL,
    format TEXT NOT NULL,
    needed_players INTEGER NOT NULL CHECK(needed_players > 0),
    is_active INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0,1)),
    author_id TEXT NOT NULL,
    date TEXT,
    time TEXT,
    schedule_status TEXT CHECK(schedule_status IN ('tentative', 'confirmed')),
    message_ref TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    closed_at TEXT,
    close_reason TEXT CHECK(close_reason IN ('quota', 'manual'))
);

CREATE INDEX IF NOT EXISTS idx_sessions_active ON sessions(is_active);
CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_active_per_room
    ON sessions(room_id) WHERE is_active = 1;

CREATE TABLE IF NOT EXISTS votes (
    member_id TEXT NOT NULL REFERENCES members(id) ON DELETE CASCADE,
    session_id INTEGER NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    choice TEXT NOT NULL CHECK(choice IN ('yes', 'no', 'maybe')),
    seq INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (member_id, session_id)
);

CREATE INDEX IF NOT EXISTS idx_votes_session ON votes(session_id, seq);

CREATE TABLE IF NOT EXISTS drafts (
    room_id TEXT PRIMARY KEY,
    author_id TEXT NOT NULL,
    format TEXT,
    schedule_status TEXT CHECK(schedule_status IN ('tentative', 'confirmed')),
    date TEXT,
    time TEXT,
    step TEXT NOT NULL DEFAULT 'format',
    prompt_message_ref TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

POSTGRES_SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS members (
        id TEXT PRIMARY KEY,
        display_name TEXT NOT NULL DEFAULT '',
        handle TEXT,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS room_members (
        room_id TEXT NOT NULL,
        member_id TEXT NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        joined_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (room_id, member_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id BIGSERIAL PRIMARY KEY,
        room_id TEXT NOT NULL,
        format TEXT NOT NULL,
        needed_players INTEGER NOT NULL CHECK(needed_players > 0),
        is_active INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0,1)),
        author_id TEXT NOT NULL,
        date TEXT,
        time TEXT,
        schedule_status TEXT CHECK(schedule_status IN ('tentative', 'confirmed')),
        message_ref TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        closed_at TIMESTAMPTZ,
        close_reason TEXT CHECK(close_reason IN ('quota', 'manual'))
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_active ON sessions(is_active)",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_active_per_room
        ON sessions(room_id) WHERE is_active = 1
    """,
    """
    CREATE TABLE IF NOT EXISTS votes (
        member_id TEXT NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        session_id BIGINT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        choice TEXT NOT NULL CHECK(choice IN ('yes', 'no', 'maybe')),
        seq INTEGER NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (member_id, session_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_votes_session ON votes(session_id, seq)",
    """
    CREATE TABLE IF NOT EXISTS drafts (
        room_id TEXT PRIMARY KEY,
        author_id TEXT NOT NULL,
        format TEXT,
        schedule_status TEXT CHECK(schedule_status IN ('tentative', 'confirmed')),
        date TEXT,
        time TEXT,
        step TEXT NOT NULL DEFAULT 'format',
        prompt_message_ref TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def _is_postgres(conn: Any) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def _now_expr(conn: Any) -> str:
    return "CURRENT_TIMESTAMP" if _is_postgres(conn) else "datetime('now')"


def _adapt_sql(conn: Any, sql: str) -> str:
    return sql.replace("?", "%s") if _is_postgres(conn) else sql


def _execute(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Any:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(_adapt_sql(conn, sql), tuple(params))
        return cur
    return conn.execute(_adapt_sql(conn, sql), tuple(params))


def _to_dict(row: Any) -> dict[str, Any]:
    return row if isinstance(row, dict) else dict(row)


def get_connection(db_path: str) -> Any:
    database_url = os.getenv("DATABASE_URL", "").strip()
    if database_url:
        from psycopg import connect
        from psycopg.rows import dict_row

        return connect(database_url, row_factory=dict_row, autocommit=False)

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False, timeout=10.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_schema(conn: Any) -> None:
    if _is_postgres(conn):
        cur = conn.cursor()
        for statement in POSTGRES_SCHEMA_STATEMENTS:
            cur.execute(statement)
    else:
        conn.executescript(SQLITE_SCHEMA)
    conn.commit()


@contextmanager
def transaction(conn: Any) -> Generator[Any, None, None]:
    """Commit the enclosed writes as one unit, or roll all of them back."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def is_unique_violation(exc: BaseException) -> bool:
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE" in str(exc).upper()
    return getattr(exc, "sqlstate", None) == "23505"


def _last_insert_id(conn: Any, cur: Any) -> int:
    if _is_postgres(conn):
        row = cur.fetchone()
    else:
        row = _execute(conn, "SELECT last_insert_rowid() AS id").fetchone()
    return int(_to_dict(row)["id"])


# Members and room roster


def upsert_member(conn: Any, member_id: str, display_name: str, handle: str | None) -> None:
    now_sql = _now_expr(conn)
    _execute(
        conn,
        f"""
        INSERT INTO members (id, display_name, handle, updated_at)
        VALUES (?, ?, ?, {now_sql})
        ON CONFLICT(id) DO UPDATE SET
            display_name = excluded.display_name,
            handle = excluded.handle,
            updated_at = {now_sql}
        """,
        [member_id, display_name, handle],
    )


def add_room_member(conn: Any, room_id: str, member_id: str) -> None:
    _execute(
        conn,
        """
        INSERT INTO room_members (room_id, member_id)
        VALUES (?, ?)
        ON CONFLICT(room_id, member_id) DO NOTHING
        """,
        [room_id, member_id],
    )


def remove_room_member(conn: Any, room_id: str, member_id: str) -> bool:
    cur = _execute(
        conn,
        "DELETE FROM room_members WHERE room_id = ? AND member_id = ?",
        [room_id, member_id],
    )
    return cur.rowcount > 0


def get_room_members(conn: Any, room_id: str) -> list[dict[str, Any]]:
    rows = _execute(
        conn,
        """
        SELECT m.*
        FROM room_members rm
        JOIN members m ON m.id = rm.member_id
        WHERE rm.room_id = ?
        ORDER BY rm.joined_at ASC, m.id ASC
        """,
        [room_id],
    ).fetchall()
    return [_to_dict(row) for row in rows]


# Sessions


def insert_session(
    conn: Any,
    room_id: str,
    fmt: str,
    needed_players: int,
    author_id: str,
    date: str | None,
    time: str | None,
    schedule_status: str | None,
) -> int:
    returning = " RETURNING id" if _is_postgres(conn) else ""
    cur = _execute(
        conn,
        f"""
        INSERT INTO sessions (
            room_id, format, needed_players, is_active, author_id, date, time, schedule_status
        ) VALUES (?, ?, ?, 1, ?, ?, ?, ?){returning}
        """,
        [room_id, fmt, needed_players, author_id, date, time, schedule_status],
    )
    return _last_insert_id(conn, cur)


def get_session(conn: Any, session_id: int) -> dict[str, Any] | None:
    row = _execute(conn, "SELECT * FROM sessions WHERE id = ?", [session_id]).fetchone()
    return _to_dict(row) if row else None


def get_active_session(conn: Any, room_id: str) -> dict[str, Any] | None:
    row = _execute(
        conn,
        "SELECT * FROM sessions WHERE room_id = ? AND is_active = 1",
        [room_id],
    ).fetchone()
    return _to_dict(row) if row else None


def get_active_sessions(conn: Any) -> list[dict[str, Any]]:
    rows = _execute(
        conn, "SELECT * FROM sessions WHERE is_active = 1 ORDER BY id ASC"
    ).fetchall()
    return [_to_dict(row) for row in rows]


def close_session(conn: Any, session_id: int, reason: str) -> bool:
    """Flip is_active to 0 only if it is still 1. Returns True for the closing call."""
    now_sql = _now_expr(conn)
    cur = _execute(
        conn,
        f"""
        UPDATE sessions
        SET is_active = 0, closed_at = {now_sql}, close_reason = ?
        WHERE id = ? AND is_active = 1
        """,
        [reason, session_id],
    )
    return cur.rowcount > 0


def update_session_schedule(
    conn: Any,
    session_id: int,
    date: str | None,
    time: str | None,
    schedule_status: str | None,
) -> bool:
    cur = _execute(
        conn,
        "UPDATE sessions SET date = ?, time = ?, schedule_status = ? WHERE id = ?",
        [date, time, schedule_status, session_id],
    )
    return cur.rowcount > 0


def set_session_message_ref(conn: Any, session_id: int, message_ref: str) -> None:
    _execute(
        conn,
        "UPDATE sessions SET message_ref = ? WHERE id = ?",
        [message_ref, session_id],
    )


# Drafts


def get_draft(conn: Any, room_id: str) -> dict[str, Any] | None:
    row = _execute(conn, "SELECT * FROM drafts WHERE room_id = ?", [room_id]).fetchone()
    return _to_dict(row) if row else None


def save_draft(conn: Any, draft: dict[str, Any]) -> None:
    now_sql = _now_expr(conn)
    _execute(
        conn,
        f"""
        INSERT INTO drafts (
            room_id, author_id, format, schedule_status, date, time, step,
            prompt_message_ref, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, {now_sql})
        ON CONFLICT(room_id) DO UPDATE SET
            author_id = excluded.author_id,
            format = excluded.format,
            schedule_status = excluded.schedule_status,
            date = excluded.date,
            time = excluded.time,
            step = excluded.step,
            prompt_message_ref = excluded.prompt_message_ref,
            updated_at = {now_sql}
        """,
        [
            draft["room_id"],
            draft["author_id"],
            draft.get("format"),
            draft.get("schedule_status"),
            draft.get("date"),
            draft.get("time"),
            draft.get("step", "format"),
            draft.get("prompt_message_ref"),
        ],
    )


def delete_draft(conn: Any, room_id: str) -> bool:
    cur = _execute(conn, "DELETE FROM drafts WHERE room_id = ?", [room_id])
    return cur.rowcount > 0


# Votes


def get_vote_choice(conn: Any, member_id: str, session_id: int) -> str | None:
    row = _execute(
        conn,
        "SELECT choice FROM votes WHERE member_id = ? AND session_id = ?",
        [member_id, session_id],
    ).fetchone()
    return str(_to_dict(row)["choice"]) if row else None


def upsert_vote(conn: Any, member_id: str, session_id: int, choice: str) -> bool:
    """Write the vote only while the session is active. Returns False otherwise."""
    now_sql = _now_expr(conn)
    cur = _execute(
        conn,
        f"""
        INSERT INTO votes (member_id, session_id, choice, seq, updated_at)
        SELECT
            CAST(? AS TEXT), CAST(? AS INTEGER), CAST(? AS TEXT),
            (SELECT COALESCE(MAX(seq), 0) + 1 FROM votes WHERE session_id = ?),
            {now_sql}
        WHERE EXISTS (SELECT 1 FROM sessions WHERE id = ? AND is_active = 1)
        ON CONFLICT(member_id, session_id) DO UPDATE SET
            choice = excluded.choice,
            seq = excluded.seq,
            updated_at = {now_sql}
        """,
        [member_id, session_id, choice, session_id, session_id],
    )
    return cur.rowcount > 0


def get_votes_with_members(conn: Any, session_id: int) -> list[dict[str, Any]]:
    rows = _execute(
        conn,
        """
        SELECT v.choice, v.seq, m.id, m.display_name, m.handle
        FROM votes v
        JOIN members m ON m.id = v.member_id
        WHERE v.session_id = ?
        ORDER BY v.seq ASC
        """,
        [session_id],
    ).fetchall()
    return [_to_dict(row) for row in rows]


def get_voted_member_ids(conn: Any, session_id: int) -> set[str]:
    rows = _execute(
        conn,
        "SELECT DISTINCT member_id FROM votes WHERE session_id = ?",
        [session_id],
    ).fetchall()
    return {str(_to_dict(row)["member_id"]) for row in rows}
