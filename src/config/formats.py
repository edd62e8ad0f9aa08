from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from src.engine.errors import InvalidFormat

DEFAULT_FORMATS: dict[str, int] = {
    "6x6": 12,
    "7x7": 14,
    "8x8": 16,
    "9x9": 18,
}

FORMAT_PATTERN = re.compile(r"^(\d{1,2})x(\d{1,2})$")


def _coerce_format(item: dict[str, Any]) -> tuple[str, int] | None:
    name = str(item.get("name", "")).strip().lower()
    if not FORMAT_PATTERN.match(name):
        return None
    try:
        needed = int(item.get("needed_players", 0))
    except (TypeError, ValueError):
        return None
    if needed <= 0:
        return None
    return name, needed


def load_formats(config_path: str) -> dict[str, int]:
    """Load the format -> quota table, falling back to the built-in one."""
    path = Path(config_path)
    if not path.exists():
        return dict(DEFAULT_FORMATS)
    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    raw = payload.get("formats", []) if isinstance(payload, dict) else []
    table: dict[str, int] = {}
    for item in raw:
        if not isinstance(item, dict):
            continue
        coerced = _coerce_format(item)
        if coerced:
            table[coerced[0]] = coerced[1]
    return table or dict(DEFAULT_FORMATS)


def needed_players(fmt: str | None, formats: dict[str, int] | None = None) -> int:
    table = formats if formats is not None else DEFAULT_FORMATS
    key = (fmt or "").strip().lower()
    if key not in table:
        raise InvalidFormat(list(table))
    return table[key]
