from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS sessions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            room_id TEXT NOT NULL,
            format TEXT NOT NULL,
            needed_players INTEGER NOT NULL CHECK(needed_players > 0),
            is_active INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0,1)),
            author_id TEXT NOT NULL,
            date TEXT,
            time TEXT,
            message_ref TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        CREATE INDEX IF NOT EXISTS idx_sessions_active ON sessions(is_active);
        CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_active_per_room
            ON sessions(room_id) WHERE is_active = 1;
        """
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS sessions;")
    conn.commit()
