"""Decoding of inbound Telegram updates and button payloads.

Button payloads travel as short strings (``vote:yes:12``,
``setup:date:2026-10-25``, ``setup:launch``). They are decoded here, once, into
typed events; nothing past this module sees the wire strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from src.db.records import WIZARD_STEPS, Member
from src.engine.roster import display_name_from_parts
from src.engine.schedule import SCHEDULE_STATUSES
from src.engine.voting import CHOICES, Choice
from src.sessions.wizard import WizardAction

WIZARD_KINDS = ("format", "status", "date", "time", "goto", "launch", "cancel")
VALUELESS_WIZARD_KINDS = ("launch", "cancel")


@dataclass(frozen=True)
class VoteCallback:
    choice: Choice
    session_id: int


CallbackPayload = Union[VoteCallback, WizardAction]


@dataclass(frozen=True)
class CommandEvent:
    room_id: str
    user: Member
    name: str
    args: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TextEvent:
    room_id: str
    user: Member
    text: str


@dataclass(frozen=True)
class ButtonEvent:
    room_id: str
    user: Member
    callback_id: str
    message_ref: str | None
    payload: CallbackPayload | None


@dataclass(frozen=True)
class MembersJoinedEvent:
    room_id: str
    members: list[Member]


@dataclass(frozen=True)
class MemberLeftEvent:
    room_id: str
    member_id: str


RoomEvent = Union[CommandEvent, TextEvent, ButtonEvent, MembersJoinedEvent, MemberLeftEvent]


def encode_callback(payload: CallbackPayload) -> str:
    if isinstance(payload, VoteCallback):
        return f"vote:{payload.choice}:{payload.session_id}"
    if payload.kind in VALUELESS_WIZARD_KINDS:
        return f"setup:{payload.kind}"
    return f"setup:{payload.kind}:{payload.value}"


def decode_callback(data: str | None) -> CallbackPayload | None:
    """Return the typed payload, or None for anything malformed or foreign."""
    parts = (data or "").split(":", 2)
    if parts[0] == "vote" and len(parts) == 3:
        choice, raw_id = parts[1], parts[2]
        if choice not in CHOICES or not raw_id.isdigit():
            return None
        return VoteCallback(choice=choice, session_id=int(raw_id))  # type: ignore[arg-type]
    if parts[0] == "setup" and len(parts) >= 2 and parts[1] in WIZARD_KINDS:
        kind = parts[1]
        if kind in VALUELESS_WIZARD_KINDS:
            return WizardAction(kind=kind)  # type: ignore[arg-type]
        if len(parts) != 3 or not parts[2]:
            return None
        if kind == "goto" and parts[2] not in WIZARD_STEPS:
            return None
        if kind == "status" and parts[2] not in SCHEDULE_STATUSES:
            return None
        return WizardAction(kind=kind, value=parts[2])  # type: ignore[arg-type]
    return None


def member_from_user(user: dict[str, Any]) -> Member:
    member_id = str(user["id"])
    return Member(
        id=member_id,
        display_name=display_name_from_parts(
            user.get("first_name"), user.get("last_name"), member_id
        ),
        handle=user.get("username") or None,
    )


def _parse_command(text: str) -> tuple[str, list[str]]:
    head, *args = text.split()
    # "/start_vote@SomeBot" -> "start_vote"
    name = head[1:].split("@", 1)[0].lower()
    return name, args


def decode_update(update: dict[str, Any]) -> RoomEvent | None:
    callback = update.get("callback_query")
    if callback:
        message = callback.get("message") or {}
        chat = message.get("chat") or {}
        if "id" not in chat:
            return None
        return ButtonEvent(
            room_id=str(chat["id"]),
            user=member_from_user(callback["from"]),
            callback_id=str(callback["id"]),
            message_ref=str(message["message_id"]) if "message_id" in message else None,
            payload=decode_callback(callback.get("data")),
        )

    message = update.get("message")
    if not message or "chat" not in message:
        return None
    room_id = str(message["chat"]["id"])

    if message.get("new_chat_members"):
        joined = [
            member_from_user(user)
            for user in message["new_chat_members"]
            if not user.get("is_bot")
        ]
        return MembersJoinedEvent(room_id=room_id, members=joined) if joined else None
    if message.get("left_chat_member"):
        return MemberLeftEvent(room_id=room_id, member_id=str(message["left_chat_member"]["id"]))

    text = (message.get("text") or "").strip()
    sender = message.get("from")
    if not text or not sender or sender.get("is_bot"):
        return None
    user = member_from_user(sender)
    if text.startswith("/"):
        name, args = _parse_command(text)
        return CommandEvent(room_id=room_id, user=user, name=name, args=args)
    return TextEvent(room_id=room_id, user=user, text=text)
