from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

from src.bot.events import (
    ButtonEvent,
    CommandEvent,
    MemberLeftEvent,
    MembersJoinedEvent,
    RoomEvent,
    TextEvent,
    VoteCallback,
    decode_update,
)
from src.config.formats import needed_players
from src.db.records import Draft, Session
from src.engine.errors import (
    IncompleteDraft,
    MessageNotModified,
    NoActiveSession,
    NotAuthorized,
    SessionAlreadyActive,
    SignupError,
    TransportError,
    ValidationError,
)
from src.engine.roster import forget_member, observe_member
from src.engine.schedule import parse_date, parse_time, today_in
from src.engine.voting import tally
from src.sessions import drafts
from src.sessions.manager import (
    Role,
    attach_message_ref,
    end_session,
    get_active_session,
    record_vote_and_maybe_close,
    start_session,
    update_schedule,
)
from src.sessions.wizard import WizardAction
from src.utils import messages
from src.utils.messages import Reply

logger = logging.getLogger(__name__)

ALIAS_PATTERN = re.compile(r"^start_(\d{1,2}x\d{1,2})$")
SCHEDULE_INPUT_PATTERN = re.compile(r"^[\d.:\-]+(\s+[\d.:\-]+)?$")
TIME_ARG_PATTERN = re.compile(r"^\d{1,2}:\d{1,2}$")

BOT_COMMANDS = [
    ("start_vote", "Настроить голосование: /start_vote [6x6|7x7|8x8|9x9] [дата] [время]"),
    ("set_time", "Дата и время для настройки: /set_time ДД.ММ HH:MM"),
    ("confirm_vote", "Запустить голосование из настройки"),
    ("cancel_setup", "Отменить настройку голосования"),
    ("set_datetime", "Изменить дату/время: /set_datetime ДД.ММ HH:MM"),
    ("end_vote", "Завершить текущее голосование"),
    ("status", "Показать текущее голосование"),
]

HELP_TEXT = "⚽ Команды бота:\n" + "\n".join(f"/{name} — {text}" for name, text in BOT_COMMANDS)


class Dispatcher:
    """Routes decoded room events to the session and wizard operations."""

    def __init__(
        self,
        conn: Any,
        api: Any,
        formats: dict[str, int],
        timezone: str = "UTC",
    ) -> None:
        self.conn = conn
        self.api = api
        self.formats = formats
        self.timezone = timezone

    # Transport helpers

    def _role(self, room_id: str, user_id: str) -> Role:
        try:
            status = self.api.get_membership_role(room_id, user_id)
        except TransportError as exc:
            logger.warning(
                "[BOT] admin_check_failed room=%s user=%s error=%s", room_id, user_id, exc
            )
            return "member"
        return "admin" if status == "admin" else "member"

    def _require_admin(self, room_id: str, user_id: str) -> None:
        if self._role(room_id, user_id) != "admin":
            raise NotAuthorized()

    def _send(self, room_id: str, reply: Reply) -> str | None:
        try:
            return self.api.send_message(room_id, reply)
        except TransportError as exc:
            logger.error("[BOT] send_failed room=%s error=%s", room_id, exc)
            return None

    def _edit(self, room_id: str, message_ref: str | None, reply: Reply) -> None:
        if not message_ref:
            return
        try:
            self.api.edit_message(room_id, message_ref, reply)
        except MessageNotModified:
            return
        except TransportError as exc:
            logger.error(
                "[BOT] edit_failed room=%s message=%s error=%s", room_id, message_ref, exc
            )

    def _answer(self, callback_id: str, text: str | None = None) -> None:
        try:
            self.api.answer_callback(callback_id, text)
        except TransportError as exc:
            logger.warning("[BOT] answer_failed callback=%s error=%s", callback_id, exc)

    def _today(self) -> date:
        return today_in(self.timezone)

    # Entry points

    def handle_update(self, update: dict[str, Any]) -> None:
        event = decode_update(update)
        if event is not None:
            self.handle_event(event)

    def handle_event(self, event: RoomEvent) -> None:
        try:
            if isinstance(event, MembersJoinedEvent):
                for member in event.members:
                    observe_member(self.conn, event.room_id, member)
            elif isinstance(event, MemberLeftEvent):
                forget_member(self.conn, event.room_id, event.member_id)
            elif isinstance(event, CommandEvent):
                observe_member(self.conn, event.room_id, event.user)
                self._on_command(event)
            elif isinstance(event, TextEvent):
                observe_member(self.conn, event.room_id, event.user)
                self._on_text(event)
            elif isinstance(event, ButtonEvent):
                self._on_button(event)
        except SignupError as exc:
            self._report(event, exc)

    def _report(self, event: RoomEvent, exc: SignupError) -> None:
        text = exc.message
        if isinstance(exc, SessionAlreadyActive) and exc.existing is not None:
            text = messages.session_summary(exc.existing)
        if isinstance(event, ButtonEvent):
            self._answer(event.callback_id, text)
        elif isinstance(event, (CommandEvent, TextEvent)):
            self._send(event.room_id, Reply(text=text))

    # Commands

    def _on_command(self, event: CommandEvent) -> None:
        alias = ALIAS_PATTERN.match(event.name)
        if event.name == "start_vote":
            self._start_vote(event, event.args)
        elif alias and alias.group(1) in self.formats:
            self._start_vote(event, [alias.group(1), *event.args])
        elif event.name == "set_time":
            self._set_draft_time(event)
        elif event.name == "confirm_vote":
            self._require_admin(event.room_id, event.user.id)
            self._launch(event.room_id, event.user.id, prompt_ref=None)
        elif event.name == "cancel_setup":
            self._require_admin(event.room_id, event.user.id)
            if drafts.cancel(self.conn, event.room_id):
                self._send(event.room_id, Reply("✅ Настройка голосования отменена."))
            else:
                self._send(event.room_id, Reply("ℹ️ Нет активной настройки для отмены."))
        elif event.name == "set_datetime":
            self._set_datetime(event)
        elif event.name == "end_vote":
            self._end_vote(event)
        elif event.name == "status":
            self._status(event.room_id)
        elif event.name in {"start", "help"}:
            self._send(event.room_id, Reply(HELP_TEXT))

    def _start_vote(self, event: CommandEvent, args: list[str]) -> None:
        self._require_admin(event.room_id, event.user.id)
        if len(args) > 1:
            # Direct path: format plus date and/or time creates the session at once.
            today = self._today()
            date_value = parse_date(args[1], today)
            time_value = parse_time(args[2]) if len(args) > 2 else None
            session = start_session(
                self.conn,
                event.room_id,
                event.user.id,
                args[0],
                date=date_value,
                time=time_value,
                formats=self.formats,
            )
            self._announce(session)
            return
        if args:
            # Reject a bad format before it replaces the room's current draft.
            needed_players(args[0], self.formats)
        draft = drafts.start_wizard(self.conn, event.room_id, event.user.id)
        if args:
            draft = drafts.choose_format(self.conn, event.room_id, args[0], self.formats)
        self._send_prompt(draft)

    def _set_draft_time(self, event: CommandEvent) -> None:
        if len(event.args) < 2:
            self._send(event.room_id, Reply("⚠️ Укажи дату и время: /set_time ДД.ММ HH:MM"))
            return
        self._require_admin(event.room_id, event.user.id)
        draft = drafts.set_schedule(
            self.conn, event.room_id, event.args[0], event.args[1], self._today()
        )
        self._send_prompt(draft)

    def _set_datetime(self, event: CommandEvent) -> None:
        if not event.args:
            self._send(event.room_id, Reply("⚠️ Укажи дату и/или время: /set_datetime ДД.ММ HH:MM"))
            return
        self._require_admin(event.room_id, event.user.id)
        session = get_active_session(self.conn, event.room_id)
        if session is None:
            raise NoActiveSession()
        date_value = time_value = None
        for arg in event.args[:2]:
            if TIME_ARG_PATTERN.match(arg):
                time_value = parse_time(arg)
            else:
                date_value = parse_date(arg, self._today())
        session = update_schedule(self.conn, session.id, date=date_value, time=time_value)
        self._send(event.room_id, messages.schedule_updated(session))
        self._edit(event.room_id, session.message_ref, self._board(session))

    def _end_vote(self, event: CommandEvent) -> None:
        if get_active_session(self.conn, event.room_id) is None:
            raise NoActiveSession()
        role = self._role(event.room_id, event.user.id)
        session = end_session(self.conn, event.room_id, event.user.id, role)
        self._edit(event.room_id, session.message_ref, self._board(session))
        self._send(event.room_id, messages.session_ended())

    def _status(self, room_id: str) -> None:
        session = get_active_session(self.conn, room_id)
        if session is not None:
            self._send(room_id, self._board(session))
            return
        draft = drafts.load_room_draft(self.conn, room_id)
        if draft is not None:
            self._send_prompt(draft)
            return
        self._send(room_id, Reply("ℹ️ Активного голосования нет. Запустить: /start_vote"))

    # Free text while a draft waits for a date or time

    def _on_text(self, event: TextEvent) -> None:
        if not SCHEDULE_INPUT_PATTERN.match(event.text):
            return
        draft = drafts.load_room_draft(self.conn, event.room_id)
        if draft is None:
            return
        parts = event.text.split()
        if len(parts) == 1 and draft.step not in {"date", "time"}:
            return
        if self._role(event.room_id, event.user.id) != "admin":
            return
        today = self._today()
        if len(parts) == 2:
            draft = drafts.set_schedule(self.conn, event.room_id, parts[0], parts[1], today)
        elif draft.step == "date":
            draft = drafts.choose_date(self.conn, event.room_id, parts[0], today)
        else:
            draft = drafts.choose_time(self.conn, event.room_id, parts[0])
        self._refresh_prompt(draft)

    # Buttons

    def _on_button(self, event: ButtonEvent) -> None:
        payload = event.payload
        if payload is None:
            self._answer(event.callback_id)
            return
        if isinstance(payload, VoteCallback):
            self._on_vote(event, payload)
        else:
            observe_member(self.conn, event.room_id, event.user)
            self._on_wizard(event, payload)

    def _on_vote(self, event: ButtonEvent, payload: VoteCallback) -> None:
        try:
            outcome = record_vote_and_maybe_close(
                self.conn, payload.session_id, event.user, payload.choice
            )
        except NoActiveSession:
            self._answer(event.callback_id, "⚠️ Голосование не активно")
            return
        if not outcome.changed:
            self._answer(event.callback_id, "Без изменений: ваш голос уже учтён.")
            return
        board_ref = event.message_ref or outcome.session.message_ref
        self._edit(event.room_id, board_ref, messages.vote_board(outcome.session, outcome.tally))
        if outcome.closed:
            self._send(event.room_id, messages.quota_reached(outcome.session))
        self._answer(event.callback_id, "Голос учтён!")

    def _on_wizard(self, event: ButtonEvent, action: WizardAction) -> None:
        self._require_admin(event.room_id, event.user.id)
        if action.kind == "cancel":
            drafts.cancel(self.conn, event.room_id)
            self._edit(event.room_id, event.message_ref, Reply("🚫 Настройка голосования отменена."))
            self._answer(event.callback_id)
            return
        if action.kind == "launch":
            self._launch(event.room_id, event.user.id, prompt_ref=event.message_ref)
            self._answer(event.callback_id)
            return
        try:
            draft = drafts.apply_action(
                self.conn, event.room_id, action, today=self._today(), formats=self.formats
            )
        except ValidationError as exc:
            self._answer(event.callback_id, exc.message)
            return
        if event.message_ref and draft.prompt_message_ref != event.message_ref:
            draft = drafts.set_prompt_ref(self.conn, event.room_id, event.message_ref)
        self._refresh_prompt(draft)
        self._answer(event.callback_id)

    # Wizard rendering and launch

    def _send_prompt(self, draft: Draft) -> None:
        ref = self._send(draft.room_id, messages.wizard_prompt(draft, self.formats, self._today()))
        if ref:
            drafts.set_prompt_ref(self.conn, draft.room_id, ref)

    def _refresh_prompt(self, draft: Draft, notice: str | None = None) -> None:
        reply = messages.wizard_prompt(draft, self.formats, self._today(), notice=notice)
        if draft.prompt_message_ref:
            self._edit(draft.room_id, draft.prompt_message_ref, reply)
        else:
            self._send_prompt(draft)

    def _launch(self, room_id: str, author_id: str, prompt_ref: str | None) -> None:
        draft = drafts.load_room_draft(self.conn, room_id)
        try:
            session = drafts.launch(self.conn, room_id, author_id, self.formats)
        except IncompleteDraft as exc:
            if draft is None:
                raise
            self._refresh_prompt(draft, notice=exc.message)
            return
        ref = prompt_ref or (draft.prompt_message_ref if draft else None)
        self._edit(room_id, ref, Reply("🚀 Голосование запущено!"))
        self._announce(session)

    def _board(self, session: Session) -> Reply:
        return messages.vote_board(session, tally(self.conn, session.id))

    def _announce(self, session: Session) -> None:
        ref = self._send(session.room_id, messages.announcement(session))
        if ref:
            attach_message_ref(self.conn, session.id, ref)
