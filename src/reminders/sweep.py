from __future__ import annotations

import argparse
import logging
from typing import Any

from src.config.settings import Settings, load_settings
from src.db.records import Member, Session
from src.engine.errors import TransportError
from src.engine.roster import room_members
from src.engine.voting import voted_member_ids
from src.sessions.manager import get_session_url, list_active_sessions
from src.utils import messages

logger = logging.getLogger(__name__)


def find_non_voters(conn: Any, session: Session) -> list[Member]:
    voted = voted_member_ids(conn, session.id)
    return [member for member in room_members(conn, session.room_id) if member.id not in voted]


def _log_room_status(
    room_id: str, session_id: int, status: str, pinged: int, error: str = ""
) -> None:
    msg = f"[SWEEP] room={room_id} session={session_id} status={status} pinged={pinged}"
    if error:
        logger.warning("%s error=%s", msg, error)
    else:
        logger.info(msg)


def sweep(conn: Any, notifier: Any) -> dict[str, int]:
    """Ping every room member who has not voted yet, one message per active session.

    A failed send is logged and the room is skipped; the sweep carries on with
    the remaining rooms.
    """
    summary = {"sessions": 0, "notified": 0, "failed": 0}
    for session in list_active_sessions(conn):
        summary["sessions"] += 1
        pending = find_non_voters(conn, session)
        if not pending:
            _log_room_status(session.room_id, session.id, "skipped", 0)
            continue
        reply = messages.reminder(pending, get_session_url(session.room_id, session.message_ref))
        try:
            notifier.send_message(session.room_id, reply)
        except TransportError as exc:
            summary["failed"] += 1
            _log_room_status(session.room_id, session.id, "failed", 0, str(exc))
            continue
        summary["notified"] += 1
        _log_room_status(session.room_id, session.id, "sent", len(pending))
    return summary


def run_once(settings: Settings) -> dict[str, int]:
    from src.bot.telegram_api import TelegramApi
    from src.db.sqlite_client import get_connection, init_schema

    conn = get_connection(settings.sqlite_db_path)
    try:
        init_schema(conn)
        api = TelegramApi(settings.bot_token, base_url=settings.telegram_api_base)
        return sweep(conn, api)
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Send one round of vote reminders.")
    parser.parse_args()

    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")
    if not settings.bot_token:
        raise SystemExit("BOT_TOKEN is required")
    result = run_once(settings)
    print(result)


if __name__ == "__main__":
    main()
