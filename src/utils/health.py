from __future__ import annotations

from typing import Any

from src.engine.errors import TransportError


def liveness() -> dict[str, Any]:
    return {"ok": True}


def _database_ready(conn: Any) -> str:
    try:
        if hasattr(conn, "execute"):
            conn.execute("SELECT 1").fetchone()
        else:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.fetchone()
        return "ready"
    except Exception as exc:
        return f"error: {exc}"


def readiness(conn: Any | None, api: Any | None = None) -> dict[str, Any]:
    dependencies: dict[str, str] = {}
    if conn is None:
        dependencies["database"] = "error: unavailable"
    else:
        dependencies["database"] = _database_ready(conn)

    if api is None:
        dependencies["telegram"] = "degraded: unavailable"
    else:
        try:
            # getMe validates the token without side effects.
            api.get_me()
            dependencies["telegram"] = "ready"
        except TransportError as exc:
            dependencies["telegram"] = f"degraded: {exc}"

    ok = dependencies["database"] == "ready"
    return {"ok": ok, "dependencies": dependencies}
