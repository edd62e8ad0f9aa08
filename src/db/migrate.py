from __future__ import annotations

import argparse
import importlib
import logging
import os
import pkgutil
import sqlite3
from pathlib import Path

from src.db.sqlite_client import get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def ensure_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS _migrations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
    )
    conn.commit()


def applied_migration_names(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM _migrations").fetchall()
    return {row[0] for row in rows}


def discover_migrations() -> list[str]:
    modules = [
        name for _, name, _ in pkgutil.iter_modules([str(MIGRATIONS_DIR)]) if name[0:3].isdigit()
    ]
    return sorted(modules)


def apply_all(db_path: str) -> list[str]:
    """Apply pending SQLite migrations in order. Returns the names applied.

    Postgres databases get their schema from ``init_schema`` instead.
    """
    if os.getenv("DATABASE_URL", "").strip():
        raise RuntimeError("Migrations target SQLite only; unset DATABASE_URL to run them")
    conn = get_connection(db_path)
    applied: list[str] = []
    try:
        ensure_migrations_table(conn)
        already = applied_migration_names(conn)
        for module_name in discover_migrations():
            if module_name in already:
                continue
            mod = importlib.import_module(f"migrations.{module_name}")
            mod.up(conn)
            conn.execute("INSERT INTO _migrations(name) VALUES (?)", (module_name,))
            conn.commit()
            applied.append(module_name)
            logger.info("[DB] migration_applied name=%s", module_name)
    finally:
        conn.close()
    return applied


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply SQLite schema migrations.")
    parser.add_argument("--db-path", default="data/matchday.db")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    try:
        applied = apply_all(args.db_path)
    except RuntimeError as exc:
        raise SystemExit(str(exc)) from exc
    print(applied)


if __name__ == "__main__":
    main()
