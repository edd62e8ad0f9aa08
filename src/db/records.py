"""Typed records loaded from store rows.

Rows written before a column existed come back without it (or with NULL).
Each loader fills such optional fields with a safe default once, here, so the
rest of the code never probes for columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.engine.schedule import ScheduleStatus, resolve_status

WIZARD_STEPS = ("format", "status", "date", "time", "review")


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Member:
    id: str
    display_name: str
    handle: str | None = None


@dataclass(frozen=True)
class Session:
    id: int
    room_id: str
    format: str
    needed_players: int
    is_active: bool
    author_id: str
    date: str | None = None
    time: str | None = None
    explicit_status: ScheduleStatus | None = None
    message_ref: str | None = None
    close_reason: str | None = None

    @property
    def schedule_status(self) -> ScheduleStatus:
        return resolve_status(self.explicit_status, self.date, self.time)


@dataclass(frozen=True)
class Draft:
    room_id: str
    author_id: str
    format: str | None = None
    schedule_status: ScheduleStatus | None = None
    date: str | None = None
    time: str | None = None
    step: str = "format"
    prompt_message_ref: str | None = None


def load_member(row: dict[str, Any]) -> Member:
    return Member(
        id=str(row["id"]),
        display_name=str(row.get("display_name") or "").strip() or f"Игрок {row['id']}",
        handle=_opt_str(row.get("handle")),
    )


def _load_status(value: Any) -> ScheduleStatus | None:
    return value if value in ("tentative", "confirmed") else None


def load_session(row: dict[str, Any]) -> Session:
    return Session(
        id=int(row["id"]),
        room_id=str(row["room_id"]),
        format=str(row["format"]),
        needed_players=int(row["needed_players"]),
        is_active=bool(int(row.get("is_active") or 0)),
        author_id=str(row.get("author_id") or ""),
        date=_opt_str(row.get("date")),
        time=_opt_str(row.get("time")),
        explicit_status=_load_status(row.get("schedule_status")),
        message_ref=_opt_str(row.get("message_ref")),
        close_reason=_opt_str(row.get("close_reason")),
    )


def load_draft(row: dict[str, Any]) -> Draft:
    step = row.get("step")
    return Draft(
        room_id=str(row["room_id"]),
        author_id=str(row.get("author_id") or ""),
        format=_opt_str(row.get("format")),
        schedule_status=_load_status(row.get("schedule_status")),
        date=_opt_str(row.get("date")),
        time=_opt_str(row.get("time")),
        step=step if step in WIZARD_STEPS else "format",
        prompt_message_ref=_opt_str(row.get("prompt_message_ref")),
    )


def draft_to_row(draft: Draft) -> dict[str, Any]:
    return {
        "room_id": draft.room_id,
        "author_id": draft.author_id,
        "format": draft.format,
        "schedule_status": draft.schedule_status,
        "date": draft.date,
        "time": draft.time,
        "step": draft.step,
        "prompt_message_ref": draft.prompt_message_ref,
    }
