from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any

from src.db.records import Draft, Session, draft_to_row, load_draft
from src.db.sqlite_client import delete_draft, get_draft, save_draft, transaction
from src.engine.errors import DraftNotFound, SessionAlreadyActive
from src.sessions import wizard
from src.sessions.manager import get_active_session, launch_from_draft

logger = logging.getLogger(__name__)


def load_room_draft(conn: Any, room_id: str) -> Draft | None:
    row = get_draft(conn, room_id)
    return load_draft(row) if row else None


def _require_draft(conn: Any, room_id: str) -> Draft:
    draft = load_room_draft(conn, room_id)
    if draft is None:
        raise DraftNotFound()
    return draft


def _save(conn: Any, draft: Draft) -> Draft:
    with transaction(conn):
        save_draft(conn, draft_to_row(draft))
    return draft


def start_wizard(conn: Any, room_id: str, author_id: str) -> Draft:
    """Open a fresh draft for the room, replacing any earlier one."""
    existing = get_active_session(conn, room_id)
    if existing is not None:
        raise SessionAlreadyActive(existing)
    draft = _save(conn, wizard.new_draft(room_id, author_id))
    logger.info("[WIZARD] started room=%s author=%s", room_id, author_id)
    return draft


def apply_action(
    conn: Any,
    room_id: str,
    action: wizard.WizardAction,
    *,
    today: date,
    formats: dict[str, int] | None = None,
) -> Draft:
    draft = _require_draft(conn, room_id)
    return _save(conn, wizard.apply(draft, action, today=today, formats=formats))


def choose_format(
    conn: Any, room_id: str, fmt: str, formats: dict[str, int] | None = None
) -> Draft:
    draft = _require_draft(conn, room_id)
    return _save(conn, wizard.choose_format(draft, fmt, formats))


def choose_status(conn: Any, room_id: str, status: str) -> Draft:
    draft = _require_draft(conn, room_id)
    return _save(conn, wizard.choose_status(draft, status))


def choose_date(conn: Any, room_id: str, raw_date: str, today: date) -> Draft:
    draft = _require_draft(conn, room_id)
    return _save(conn, wizard.choose_date(draft, raw_date, today))


def choose_time(conn: Any, room_id: str, raw_time: str) -> Draft:
    draft = _require_draft(conn, room_id)
    return _save(conn, wizard.choose_time(draft, raw_time))


def set_schedule(conn: Any, room_id: str, raw_date: str, raw_time: str, today: date) -> Draft:
    """Fill date and time at once; both must parse or nothing is saved."""
    draft = _require_draft(conn, room_id)
    updated = wizard.choose_time(wizard.choose_date(draft, raw_date, today), raw_time)
    return _save(conn, updated)


def jump_to(conn: Any, room_id: str, target: str) -> Draft:
    draft = _require_draft(conn, room_id)
    return _save(conn, wizard.jump_to(draft, target))


def set_prompt_ref(conn: Any, room_id: str, message_ref: str) -> Draft:
    draft = _require_draft(conn, room_id)
    return _save(conn, replace(draft, prompt_message_ref=message_ref))


def launch(
    conn: Any,
    room_id: str,
    author_id: str,
    formats: dict[str, int] | None = None,
) -> Session:
    draft = _require_draft(conn, room_id)
    wizard.check_launchable(draft)
    session = launch_from_draft(conn, draft, author_id=author_id, formats=formats)
    logger.info("[WIZARD] launched room=%s session=%s", room_id, session.id)
    return session


def cancel(conn: Any, room_id: str) -> bool:
    """Drop the room's draft. Returns False when there was nothing to drop."""
    with transaction(conn):
        deleted = delete_draft(conn, room_id)
    if deleted:
        logger.info("[WIZARD] cancelled room=%s", room_id)
    return deleted
