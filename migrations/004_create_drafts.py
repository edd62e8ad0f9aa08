from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.executescript(
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
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS drafts;")
    conn.commit()
