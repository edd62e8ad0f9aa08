from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS votes (
            member_id TEXT NOT NULL REFERENCES members(id) ON DELETE CASCADE,
            session_id INTEGER NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
            choice TEXT NOT NULL CHECK(choice IN ('yes', 'no', 'maybe')),
            seq INTEGER NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            PRIMARY KEY (member_id, session_id)
        );
        CREATE INDEX IF NOT EXISTS idx_votes_session ON votes(session_id, seq);
        """
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS votes;")
    conn.commit()
