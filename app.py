from __future__ import annotations

import argparse
import json
import logging
import time
from typing import Any

from src.bot.dispatcher import BOT_COMMANDS, Dispatcher
from src.bot.telegram_api import TelegramApi
from src.config.formats import load_formats
from src.config.settings import Settings, ensure_runtime_dirs, load_settings, validate_settings
from src.db.migrate import apply_all
from src.db.sqlite_client import get_connection, init_schema
from src.engine.errors import TransportError
from src.reminders.sweep import sweep
from src.utils.health import liveness, readiness

logger = logging.getLogger("matchday")

POLL_BACKOFF_SECONDS = 5


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _open_store(settings: Settings) -> Any:
    ensure_runtime_dirs(settings)
    if not settings.database_url:
        apply_all(settings.sqlite_db_path)
    conn = get_connection(settings.sqlite_db_path)
    init_schema(conn)
    return conn


def _next_offset(updates: list[dict[str, Any]], offset: int | None) -> int | None:
    ids = [int(update["update_id"]) for update in updates if "update_id" in update]
    return max(ids) + 1 if ids else offset


def poll_once(
    dispatcher: Dispatcher,
    api: TelegramApi,
    offset: int | None,
    timeout: int,
) -> int | None:
    """Fetch one batch of updates, dispatch each, and return the next offset."""
    updates = api.get_updates(offset, timeout)
    for update in updates:
        try:
            dispatcher.handle_update(update)
        except Exception:
            # One bad update must not stall the queue; it is acknowledged below.
            logger.exception("[BOT] update_failed update_id=%s", update.get("update_id"))
    return _next_offset(updates, offset)


def run(settings: Settings) -> None:
    conn = _open_store(settings)
    formats = load_formats(settings.formats_config_path)
    api = TelegramApi(settings.bot_token, base_url=settings.telegram_api_base)
    dispatcher = Dispatcher(conn, api, formats, timezone=settings.timezone)
    try:
        api.set_my_commands(BOT_COMMANDS)
    except TransportError as exc:
        logger.warning("[BOT] set_commands_failed error=%s", exc)

    sweep_every = settings.reminder_interval_hours * 3600
    next_sweep = time.monotonic() + sweep_every
    offset: int | None = None
    logger.info("[BOT] polling formats=%s timezone=%s", ",".join(formats), settings.timezone)
    try:
        while True:
            try:
                offset = poll_once(dispatcher, api, offset, settings.poll_timeout_seconds)
            except TransportError as exc:
                logger.warning("[BOT] poll_failed error=%s", exc)
                time.sleep(POLL_BACKOFF_SECONDS)
            if time.monotonic() >= next_sweep:
                result = sweep(conn, api)
                logger.info("[SWEEP] finished %s", result)
                next_sweep = time.monotonic() + sweep_every
    finally:
        conn.close()


def check(settings: Settings) -> int:
    conn = None
    try:
        conn = _open_store(settings)
    except Exception as exc:
        logger.error("[DB] open_failed error=%s", exc)
    api = TelegramApi(settings.bot_token, base_url=settings.telegram_api_base)
    status = readiness(conn, api)
    print(json.dumps({"liveness": liveness(), "readiness": status}, ensure_ascii=False))
    if conn is not None:
        conn.close()
    return 0 if status["ok"] else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Match sign-up bot.")
    parser.add_argument("--check", action="store_true", help="print readiness and exit")
    args = parser.parse_args()

    settings = load_settings()
    errors = validate_settings(settings)
    if errors:
        raise SystemExit("Invalid configuration:\n- " + "\n- ".join(errors))
    _configure_logging(settings)
    if args.check:
        raise SystemExit(check(settings))
    run(settings)


if __name__ == "__main__":
    main()
