from __future__ import annotations

import sqlite3

NEW_COLUMNS = {
    "schedule_status": "TEXT CHECK(schedule_status IN ('tentative', 'confirmed'))",
    "closed_at": "TEXT",
    "close_reason": "TEXT CHECK(close_reason IN ('quota', 'manual'))",
}


def _existing_columns(conn: sqlite3.Connection) -> set[str]:
    return {row[1] for row in conn.execute("PRAGMA table_info(sessions)").fetchall()}


def up(conn: sqlite3.Connection) -> None:
    # Databases created from the full schema already carry these columns.
    existing = _existing_columns(conn)
    for name, ddl in NEW_COLUMNS.items():
        if name not in existing:
            conn.execute(f"ALTER TABLE sessions ADD COLUMN {name} {ddl}")
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    existing = _existing_columns(conn)
    for name in NEW_COLUMNS:
        if name in existing:
            conn.execute(f"ALTER TABLE sessions DROP COLUMN {name}")
    conn.commit()
