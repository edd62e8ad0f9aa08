from __future__ import annotations

import pytest

from src.engine.errors import IncompleteDraft, InvalidDate, InvalidFormat, InvalidTime
from src.sessions import wizard
from src.sessions.wizard import WizardAction


@pytest.fixture
def draft():
    return wizard.new_draft("-1001", "100")


def test_happy_path_walks_every_step(draft, today, formats):
    steps = [
        WizardAction("format", "7x7"),
        WizardAction("status", "confirmed"),
        WizardAction("date", "завтра"),
        WizardAction("time", "19:00"),
    ]
    seen = [draft.step]
    for action in steps:
        draft = wizard.apply(draft, action, today=today, formats=formats)
        seen.append(draft.step)
    assert seen == ["format", "status", "date", "time", "review"]
    assert (draft.format, draft.schedule_status, draft.date, draft.time) == (
        "7x7",
        "confirmed",
        "2026-03-02",
        "19:00",
    )
    wizard.check_launchable(draft)


def test_goto_keeps_collected_fields(draft, today, formats):
    draft = wizard.apply(draft, WizardAction("format", "6x6"), today=today, formats=formats)
    draft = wizard.apply(draft, WizardAction("goto", "format"), today=today, formats=formats)
    assert draft.step == "format"
    assert draft.format == "6x6"


def test_invalid_input_leaves_draft_untouched(draft, today, formats):
    with pytest.raises(InvalidFormat):
        wizard.apply(draft, WizardAction("format", "2x2"), today=today, formats=formats)
    with pytest.raises(InvalidDate):
        wizard.choose_date(draft, "31.02", today)
    with pytest.raises(InvalidTime):
        wizard.choose_time(draft, "25:00")
    assert draft == wizard.new_draft("-1001", "100")


def test_previous_step_stops_at_format():
    assert wizard.previous_step("date") == "status"
    assert wizard.previous_step("format") == "format"
    assert wizard.previous_step("review") == "time"


def test_missing_fields_and_launch_check(draft, today):
    draft = wizard.choose_date(draft, "05.03", today)
    assert wizard.missing_fields(draft) == ["format", "time"]
    with pytest.raises(IncompleteDraft):
        wizard.check_launchable(draft)


def test_launch_and_cancel_are_not_transitions(draft, today):
    with pytest.raises(ValueError):
        wizard.apply(draft, WizardAction("launch"), today=today)
    with pytest.raises(ValueError):
        wizard.jump_to(draft, "nowhere")
