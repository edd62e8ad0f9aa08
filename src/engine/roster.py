from __future__ import annotations

from typing import Any

from src.db.records import Member, load_member
from src.db.sqlite_client import (
    add_room_member,
    get_room_members,
    remove_room_member,
    transaction,
    upsert_member,
)


def display_name_from_parts(first_name: str | None, last_name: str | None, member_id: str) -> str:
    full = " ".join(part.strip() for part in (first_name or "", last_name or "") if part.strip())
    return full or f"Игрок {member_id}"


def record_member(conn: Any, room_id: str, member: Member) -> None:
    """Upsert the profile and room membership. Caller owns the transaction."""
    upsert_member(conn, member.id, member.display_name, member.handle)
    add_room_member(conn, room_id, member.id)


def observe_member(conn: Any, room_id: str, member: Member) -> None:
    with transaction(conn):
        record_member(conn, room_id, member)


def forget_member(conn: Any, room_id: str, member_id: str) -> bool:
    with transaction(conn):
        return remove_room_member(conn, room_id, member_id)


def room_members(conn: Any, room_id: str) -> list[Member]:
    return [load_member(row) for row in get_room_members(conn, room_id)]
