"""Schedule value helpers.

Accepted date inputs:
- ISO ``YYYY-MM-DD``.
- ``DD.MM``: current year, rolled to the next year when that day already passed.
- ``DD.MM.YYYY``.
- Relative tokens in Russian or English: today / tomorrow / day after tomorrow.

Times are strict ``HH:MM``. Dates before the caller's local day are rejected.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Literal

from dateutil import tz

from src.engine.errors import InvalidDate, InvalidTime

ScheduleStatus = Literal["tentative", "confirmed"]
SCHEDULE_STATUSES: tuple[ScheduleStatus, ...] = ("tentative", "confirmed")

ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
DAY_MONTH_PATTERN = re.compile(r"^(\d{2})\.(\d{2})$")
DAY_MONTH_YEAR_PATTERN = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")
TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")

RELATIVE_DAYS = {
    "сегодня": 0,
    "today": 0,
    "завтра": 1,
    "tomorrow": 1,
    "послезавтра": 2,
    "day-after-tomorrow": 2,
}

WEEKDAYS_RU = ("пн", "вт", "ср", "чт", "пт", "сб", "вс")
MONTHS_RU = (
    "янв.",
    "февр.",
    "мар.",
    "апр.",
    "мая",
    "июн.",
    "июл.",
    "авг.",
    "сент.",
    "окт.",
    "нояб.",
    "дек.",
)


def today_in(tz_name: str) -> date:
    """Return the current calendar day in the given IANA timezone."""
    zone = tz.gettz(tz_name) or tz.UTC
    return datetime.now(zone).date()


def _build_date(year: int, month: int, day: int) -> date:
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidDate() from exc


def parse_date(raw: str, today: date) -> str:
    text = (raw or "").strip().lower()
    if not text:
        raise InvalidDate()

    if text in RELATIVE_DAYS:
        return (today + timedelta(days=RELATIVE_DAYS[text])).isoformat()

    if match := ISO_DATE_PATTERN.match(text):
        year, month, day = (int(part) for part in match.groups())
        resolved = _build_date(year, month, day)
    elif match := DAY_MONTH_YEAR_PATTERN.match(text):
        day, month, year = (int(part) for part in match.groups())
        resolved = _build_date(year, month, day)
    elif match := DAY_MONTH_PATTERN.match(text):
        day, month = (int(part) for part in match.groups())
        resolved = _build_date(today.year, month, day)
        if resolved < today:
            resolved = _build_date(today.year + 1, month, day)
    else:
        raise InvalidDate()

    if resolved < today:
        raise InvalidDate()
    return resolved.isoformat()


def parse_time(raw: str) -> str:
    text = (raw or "").strip()
    match = TIME_PATTERN.match(text)
    if not match:
        raise InvalidTime()
    hours, minutes = (int(part) for part in match.groups())
    if hours > 23 or minutes > 59:
        raise InvalidTime()
    return text


def resolve_status(
    explicit: str | None, date_value: str | None, time_value: str | None
) -> ScheduleStatus:
    if explicit in SCHEDULE_STATUSES:
        return explicit  # type: ignore[return-value]
    return "confirmed" if date_value and time_value else "tentative"


def format_date_label(date_value: str) -> str:
    """Return a short Russian label, e.g. 'сб, 25 окт.'."""
    parsed = date.fromisoformat(date_value)
    return f"{WEEKDAYS_RU[parsed.weekday()]}, {parsed.day} {MONTHS_RU[parsed.month - 1]}"


def render_schedule_line(
    date_value: str | None, time_value: str | None, status: ScheduleStatus
) -> str:
    date_label = format_date_label(date_value) if date_value else "дата уточняется"
    if status == "confirmed":
        if time_value:
            return f"🗓️ {date_label} в {time_value} (подтверждено)"
        return f"🗓️ {date_label}, время уточняется"
    if time_value:
        return f"🗓️ Предварительно: {date_label} в {time_value}"
    return f"🗓️ Предварительно: {date_label}, время будет объявлено позже"
