from __future__ import annotations

import pytest

from src.engine.errors import DraftNotFound, IncompleteDraft, SessionAlreadyActive
from src.sessions import drafts
from src.sessions.manager import get_active_session, start_session
from src.sessions.wizard import WizardAction

ROOM_ID = "-1001234567890"
ADMIN_ID = "100"


def test_start_wizard_replaces_existing_draft(sqlite_db, formats):
    drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)
    drafts.choose_format(sqlite_db, ROOM_ID, "6x6", formats)
    fresh = drafts.start_wizard(sqlite_db, ROOM_ID, "200")
    assert fresh.format is None
    assert drafts.load_room_draft(sqlite_db, ROOM_ID) == fresh


def test_start_wizard_refused_while_session_active(sqlite_db):
    start_session(sqlite_db, ROOM_ID, ADMIN_ID, "6x6")
    with pytest.raises(SessionAlreadyActive):
        drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)


def test_actions_without_draft_raise(sqlite_db, today):
    with pytest.raises(DraftNotFound):
        drafts.apply_action(sqlite_db, ROOM_ID, WizardAction("time", "19:00"), today=today)


def test_apply_action_persists_each_step(sqlite_db, today, formats):
    drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)
    drafts.apply_action(sqlite_db, ROOM_ID, WizardAction("format", "8x8"), today=today, formats=formats)
    drafts.choose_status(sqlite_db, ROOM_ID, "tentative")
    stored = drafts.load_room_draft(sqlite_db, ROOM_ID)
    assert stored.format == "8x8"
    assert stored.schedule_status == "tentative"
    assert stored.step == "date"


def test_set_schedule_fills_date_and_time(sqlite_db, today):
    drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)
    draft = drafts.set_schedule(sqlite_db, ROOM_ID, "10.03", "19:30", today)
    assert (draft.date, draft.time, draft.step) == ("2026-03-10", "19:30", "review")


def test_launch_incomplete_draft_keeps_it(sqlite_db, formats):
    drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)
    drafts.choose_format(sqlite_db, ROOM_ID, "6x6", formats)
    with pytest.raises(IncompleteDraft):
        drafts.launch(sqlite_db, ROOM_ID, ADMIN_ID, formats)
    assert drafts.load_room_draft(sqlite_db, ROOM_ID) is not None
    assert get_active_session(sqlite_db, ROOM_ID) is None


def test_launch_creates_session_and_drops_draft(sqlite_db, today, formats):
    drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)
    drafts.choose_format(sqlite_db, ROOM_ID, "7x7", formats)
    drafts.choose_status(sqlite_db, ROOM_ID, "confirmed")
    drafts.set_schedule(sqlite_db, ROOM_ID, "завтра", "20:00", today)
    session = drafts.launch(sqlite_db, ROOM_ID, "555", formats)
    assert session.needed_players == 14
    assert (session.date, session.time) == ("2026-03-02", "20:00")
    assert session.author_id == "555"
    assert drafts.load_room_draft(sqlite_db, ROOM_ID) is None


def test_cancel_is_idempotent(sqlite_db):
    drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)
    assert drafts.cancel(sqlite_db, ROOM_ID) is True
    assert drafts.cancel(sqlite_db, ROOM_ID) is False


def test_set_prompt_ref_round_trips(sqlite_db):
    drafts.start_wizard(sqlite_db, ROOM_ID, ADMIN_ID)
    drafts.set_prompt_ref(sqlite_db, ROOM_ID, "77")
    assert drafts.load_room_draft(sqlite_db, ROOM_ID).prompt_message_ref == "77"
