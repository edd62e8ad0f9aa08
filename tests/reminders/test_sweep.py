from __future__ import annotations

from src.engine.errors import TransportError
from src.engine.roster import forget_member, observe_member
from src.reminders.sweep import find_non_voters, sweep
from src.sessions.manager import attach_message_ref, record_vote_and_maybe_close, start_session

ROOM_ID = "-1001234567890"
OTHER_ROOM = "-1009876543210"


class _Notifier:
    def __init__(self, failing_rooms: set[str] | None = None) -> None:
        self.failing_rooms = failing_rooms or set()
        self.sent: list[tuple[str, str]] = []

    def send_message(self, room_id: str, reply) -> str:
        if room_id in self.failing_rooms:
            raise TransportError("chat not found")
        self.sent.append((room_id, reply.text))
        return "1"


def _seed_room(conn, room_id: str, make_member, indexes: range):
    for index in indexes:
        observe_member(conn, room_id, make_member(index))
    return start_session(conn, room_id, "100", "6x6")


def test_find_non_voters_excludes_voters_and_other_rooms(sqlite_db, make_member):
    session = _seed_room(sqlite_db, ROOM_ID, make_member, range(3))
    observe_member(sqlite_db, OTHER_ROOM, make_member(9))
    record_vote_and_maybe_close(sqlite_db, session.id, make_member(0), "no")
    assert [m.id for m in find_non_voters(sqlite_db, session)] == ["1001", "1002"]


def test_member_who_left_is_not_pinged(sqlite_db, make_member):
    session = _seed_room(sqlite_db, ROOM_ID, make_member, range(2))
    forget_member(sqlite_db, ROOM_ID, "1001")
    assert [m.id for m in find_non_voters(sqlite_db, session)] == ["1000"]


def test_sweep_mentions_non_voters_with_link(sqlite_db, make_member):
    session = _seed_room(sqlite_db, ROOM_ID, make_member, range(2))
    attach_message_ref(sqlite_db, session.id, "42")
    notifier = _Notifier()
    summary = sweep(sqlite_db, notifier)
    assert summary == {"sessions": 1, "notified": 1, "failed": 0}
    room_id, text = notifier.sent[0]
    assert room_id == ROOM_ID
    assert "tg://user?id=1000" in text
    assert "https://t.me/c/1234567890/42" in text


def test_sweep_skips_rooms_where_everyone_voted(sqlite_db, make_member):
    session = _seed_room(sqlite_db, ROOM_ID, make_member, range(1))
    record_vote_and_maybe_close(sqlite_db, session.id, make_member(0), "maybe")
    notifier = _Notifier()
    assert sweep(sqlite_db, notifier) == {"sessions": 1, "notified": 0, "failed": 0}
    assert notifier.sent == []


def test_failed_room_does_not_stop_sweep(sqlite_db, make_member):
    _seed_room(sqlite_db, ROOM_ID, make_member, range(2))
    _seed_room(sqlite_db, OTHER_ROOM, make_member, range(5, 7))
    notifier = _Notifier(failing_rooms={ROOM_ID})
    summary = sweep(sqlite_db, notifier)
    assert summary == {"sessions": 2, "notified": 1, "failed": 1}
    assert [room for room, _ in notifier.sent] == [OTHER_ROOM]


def test_sweep_logs_failures(sqlite_db, make_member, mocker):
    _seed_room(sqlite_db, ROOM_ID, make_member, range(1))
    log = mocker.patch("src.reminders.sweep.logger")
    sweep(sqlite_db, _Notifier(failing_rooms={ROOM_ID}))
    message = log.warning.call_args.args[1]
    assert "status=failed" in message
