from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from src.db.records import Member, load_member
from src.db.sqlite_client import (
    get_vote_choice,
    get_voted_member_ids,
    get_votes_with_members,
    transaction,
    upsert_vote,
)
from src.engine.errors import NoActiveSession
from src.engine.roster import record_member

Choice = Literal["yes", "no", "maybe"]
CHOICES: tuple[Choice, ...] = ("yes", "no", "maybe")


@dataclass(frozen=True)
class Tally:
    yes: list[Member] = field(default_factory=list)
    no: list[Member] = field(default_factory=list)
    maybe: list[Member] = field(default_factory=list)

    def members_for(self, choice: Choice) -> list[Member]:
        return getattr(self, choice)

    def counts(self) -> dict[str, int]:
        return {choice: len(self.members_for(choice)) for choice in CHOICES}


@dataclass(frozen=True)
class VoteResult:
    changed: bool
    tally: Tally


def tally(conn: Any, session_id: int) -> Tally:
    """Group current votes by choice, each bucket ordered by when the vote was last set."""
    buckets: dict[str, list[Member]] = {choice: [] for choice in CHOICES}
    for row in get_votes_with_members(conn, session_id):
        buckets[row["choice"]].append(load_member(row))
    return Tally(yes=buckets["yes"], no=buckets["no"], maybe=buckets["maybe"])


def cast_vote(
    conn: Any,
    room_id: str,
    member: Member,
    session_id: int,
    choice: Choice,
) -> VoteResult:
    if choice not in CHOICES:
        raise ValueError(f"Unknown vote choice: {choice}")
    current = get_vote_choice(conn, member.id, session_id)
    if current == choice:
        return VoteResult(changed=False, tally=tally(conn, session_id))
    with transaction(conn):
        # A vote proves the member is present in the room.
        record_member(conn, room_id, member)
        if not upsert_vote(conn, member.id, session_id, choice):
            # The session closed after the caller looked at it.
            raise NoActiveSession("⚠️ Голосование не активно.")
    return VoteResult(changed=True, tally=tally(conn, session_id))


def voted_member_ids(conn: Any, session_id: int) -> set[str]:
    return get_voted_member_ids(conn, session_id)
