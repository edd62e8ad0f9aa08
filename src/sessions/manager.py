from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from src.config.formats import needed_players
from src.db.records import Draft, Member, Session, load_session
from src.db.sqlite_client import (
    close_session,
    delete_draft,
    get_active_session as get_active_session_row,
    get_active_sessions,
    get_session,
    insert_session,
    is_unique_violation,
    set_session_message_ref,
    transaction,
    update_session_schedule,
)
from src.engine.errors import (
    IncompleteDraft,
    NoActiveSession,
    NotAuthorized,
    SessionAlreadyActive,
)
from src.engine.schedule import SCHEDULE_STATUSES
from src.engine.voting import Choice, Tally, cast_vote

logger = logging.getLogger(__name__)

Role = Literal["admin", "member"]


@dataclass(frozen=True)
class VoteOutcome:
    changed: bool
    tally: Tally
    closed: bool
    session: Session


def get_active_session(conn: Any, room_id: str) -> Session | None:
    row = get_active_session_row(conn, room_id)
    return load_session(row) if row else None


def list_active_sessions(conn: Any) -> list[Session]:
    return [load_session(row) for row in get_active_sessions(conn)]


def _load_or_raise(conn: Any, session_id: int) -> Session:
    row = get_session(conn, session_id)
    if not row:
        raise NoActiveSession()
    return load_session(row)


def _create_session(
    conn: Any,
    room_id: str,
    author_id: str,
    fmt: str,
    date: str | None,
    time: str | None,
    schedule_status: str | None,
    formats: dict[str, int] | None,
) -> Session:
    fmt_key = fmt.strip().lower()
    quota = needed_players(fmt_key, formats)
    if schedule_status is not None and schedule_status not in SCHEDULE_STATUSES:
        raise ValueError(f"Unknown schedule status: {schedule_status}")
    try:
        with transaction(conn):
            # The partial unique index on (room_id WHERE is_active = 1) rejects a
            # second active session even when two launches race.
            session_id = insert_session(
                conn, room_id, fmt_key, quota, author_id, date, time, schedule_status
            )
            # A room never holds a draft next to an active session.
            delete_draft(conn, room_id)
    except Exception as exc:
        if is_unique_violation(exc):
            raise SessionAlreadyActive(get_active_session(conn, room_id)) from exc
        raise
    logger.info(
        "[SESSION] started room=%s session=%s format=%s needed=%s",
        room_id,
        session_id,
        fmt_key,
        quota,
    )
    return _load_or_raise(conn, session_id)


def start_session(
    conn: Any,
    room_id: str,
    author_id: str,
    fmt: str,
    date: str | None = None,
    time: str | None = None,
    schedule_status: str | None = None,
    formats: dict[str, int] | None = None,
) -> Session:
    return _create_session(
        conn, room_id, author_id, fmt, date, time, schedule_status, formats
    )


def launch_from_draft(
    conn: Any,
    draft: Draft,
    author_id: str | None = None,
    formats: dict[str, int] | None = None,
) -> Session:
    """Create the session described by a draft and delete the draft in one transaction."""
    if not draft.format:
        raise IncompleteDraft("⚠️ Сначала выбери формат игры.")
    return _create_session(
        conn,
        draft.room_id,
        author_id or draft.author_id,
        draft.format,
        draft.date,
        draft.time,
        draft.schedule_status,
        formats,
    )


def record_vote_and_maybe_close(
    conn: Any,
    session_id: int,
    member: Member,
    choice: Choice,
) -> VoteOutcome:
    session = _load_or_raise(conn, session_id)
    if not session.is_active:
        # Votes against a closed session are rejected rather than tallied.
        raise NoActiveSession("⚠️ Голосование не активно.")
    result = cast_vote(conn, session.room_id, member, session.id, choice)
    if not result.changed:
        return VoteOutcome(changed=False, tally=result.tally, closed=False, session=session)

    closed = False
    if len(result.tally.yes) >= session.needed_players:
        with transaction(conn):
            closed = close_session(conn, session.id, "quota")
        if closed:
            logger.info(
                "[SESSION] quota_reached room=%s session=%s yes=%s",
                session.room_id,
                session.id,
                len(result.tally.yes),
            )
            session = _load_or_raise(conn, session.id)
    return VoteOutcome(changed=True, tally=result.tally, closed=closed, session=session)


def end_session(conn: Any, room_id: str, requester_id: str, requester_role: Role) -> Session:
    session = get_active_session(conn, room_id)
    if session is None:
        raise NoActiveSession()
    is_author = bool(session.author_id) and session.author_id == requester_id
    if requester_role != "admin" and not is_author:
        raise NotAuthorized(
            "🚫 Завершать голосование могут только администраторы или автор голосования."
        )
    with transaction(conn):
        close_session(conn, session.id, "manual")
        delete_draft(conn, room_id)
    logger.info("[SESSION] ended room=%s session=%s by=%s", room_id, session.id, requester_id)
    return _load_or_raise(conn, session.id)


def update_schedule(
    conn: Any,
    session_id: int,
    date: str | None = None,
    time: str | None = None,
    schedule_status: str | None = None,
) -> Session:
    session = _load_or_raise(conn, session_id)
    if not session.is_active:
        raise NoActiveSession()
    if schedule_status is not None and schedule_status not in SCHEDULE_STATUSES:
        raise ValueError(f"Unknown schedule status: {schedule_status}")
    with transaction(conn):
        update_session_schedule(
            conn,
            session.id,
            date if date is not None else session.date,
            time if time is not None else session.time,
            schedule_status if schedule_status is not None else session.explicit_status,
        )
    return _load_or_raise(conn, session.id)


def attach_message_ref(conn: Any, session_id: int, message_ref: str) -> None:
    with transaction(conn):
        set_session_message_ref(conn, session_id, message_ref)


def get_session_url(room_id: str, message_ref: str | None) -> str | None:
    """Deep link to the announcement; only supergroups ("-100…" ids) have one."""
    if not message_ref or not room_id.startswith("-100"):
        return None
    return f"https://t.me/c/{room_id[4:]}/{message_ref}"
