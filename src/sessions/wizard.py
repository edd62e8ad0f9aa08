"""Setup wizard transitions.

The wizard walks a draft through ``format -> status -> date -> time -> review``.
Any earlier step can be revisited with ``goto``; ``review`` is left only by
launching (the draft becomes a session) or cancelling (the draft is dropped).

Everything here is pure: a transition takes a draft and an action and returns
the next draft. Persistence lives in ``src.sessions.drafts``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Literal

from src.config.formats import needed_players
from src.db.records import WIZARD_STEPS, Draft
from src.engine.errors import IncompleteDraft
from src.engine.schedule import SCHEDULE_STATUSES, parse_date, parse_time

ActionKind = Literal["format", "status", "date", "time", "goto", "launch", "cancel"]

NEXT_STEP = {
    "format": "status",
    "status": "date",
    "date": "time",
    "time": "review",
}


@dataclass(frozen=True)
class WizardAction:
    kind: ActionKind
    value: str | None = None


def new_draft(room_id: str, author_id: str) -> Draft:
    return Draft(room_id=room_id, author_id=author_id, step="format")


def previous_step(step: str) -> str:
    index = WIZARD_STEPS.index(step) if step in WIZARD_STEPS else 0
    return WIZARD_STEPS[max(index - 1, 0)]


def choose_format(draft: Draft, fmt: str, formats: dict[str, int] | None = None) -> Draft:
    key = (fmt or "").strip().lower()
    needed_players(key, formats)
    return replace(draft, format=key, step=NEXT_STEP["format"])


def choose_status(draft: Draft, status: str) -> Draft:
    if status not in SCHEDULE_STATUSES:
        raise ValueError(f"Unknown schedule status: {status}")
    return replace(draft, schedule_status=status, step=NEXT_STEP["status"])


def choose_date(draft: Draft, raw_date: str, today: date) -> Draft:
    return replace(draft, date=parse_date(raw_date, today), step=NEXT_STEP["date"])


def choose_time(draft: Draft, raw_time: str) -> Draft:
    return replace(draft, time=parse_time(raw_time), step=NEXT_STEP["time"])


def jump_to(draft: Draft, target: str) -> Draft:
    if target not in WIZARD_STEPS:
        raise ValueError(f"Unknown wizard step: {target}")
    return replace(draft, step=target)


def missing_fields(draft: Draft) -> list[str]:
    return [name for name in ("format", "date", "time") if not getattr(draft, name)]


def check_launchable(draft: Draft) -> None:
    if missing_fields(draft):
        raise IncompleteDraft()


def apply(
    draft: Draft,
    action: WizardAction,
    *,
    today: date,
    formats: dict[str, int] | None = None,
) -> Draft:
    """Return the draft after a field-setting or navigation action."""
    value = action.value or ""
    if action.kind == "format":
        return choose_format(draft, value, formats)
    if action.kind == "status":
        return choose_status(draft, value)
    if action.kind == "date":
        return choose_date(draft, value, today)
    if action.kind == "time":
        return choose_time(draft, value)
    if action.kind == "goto":
        return jump_to(draft, value)
    raise ValueError(f"Action {action.kind} does not transform a draft")
