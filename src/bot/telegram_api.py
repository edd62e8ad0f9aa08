from __future__ import annotations

from typing import Any

import requests

from src.bot.events import encode_callback
from src.engine.errors import MessageNotModified, TransportError
from src.utils.messages import Button, Reply

ADMIN_STATUSES = {"administrator", "creator"}
NOT_MODIFIED_MARKER = "message is not modified"


class TelegramApiError(TransportError):
    def __init__(self, method: str, description: str) -> None:
        self.method = method
        self.description = description
        super().__init__(f"Telegram {method} failed: {description}")


def keyboard_markup(buttons: list[list[Button]]) -> dict[str, Any]:
    return {
        "inline_keyboard": [
            [
                {"text": button.text, "callback_data": encode_callback(button.payload)}
                for button in row
            ]
            for row in buttons
        ]
    }


class TelegramApi:
    """Thin Bot API client. Every failure surfaces as a TransportError."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.telegram.org",
        timeout_seconds: int = 10,
        session: requests.Session | None = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/bot{token}"
        self._timeout = timeout_seconds
        self._http = session or requests.Session()

    def _call(self, method: str, payload: dict[str, Any], timeout: float | None = None) -> Any:
        try:
            response = self._http.post(
                f"{self._url}/{method}",
                json=payload,
                timeout=timeout or self._timeout,
            )
        except requests.RequestException as exc:
            raise TelegramApiError(method, str(exc)) from exc
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 300 or not body.get("ok"):
            description = str(body.get("description") or f"HTTP {response.status_code}")
            if NOT_MODIFIED_MARKER in description.lower():
                raise MessageNotModified(description)
            raise TelegramApiError(method, description)
        return body.get("result")

    def _reply_payload(self, reply: Reply) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": reply.text, "disable_web_page_preview": True}
        if reply.buttons:
            payload["reply_markup"] = keyboard_markup(reply.buttons)
        if reply.markdown:
            payload["parse_mode"] = "Markdown"
        return payload

    def send_message(self, room_id: str, reply: Reply) -> str:
        result = self._call("sendMessage", {"chat_id": room_id, **self._reply_payload(reply)})
        return str(result["message_id"])

    def edit_message(self, room_id: str, message_ref: str, reply: Reply) -> None:
        payload = {"chat_id": room_id, "message_id": int(message_ref), **self._reply_payload(reply)}
        if not reply.buttons:
            payload["reply_markup"] = {"inline_keyboard": []}
        self._call("editMessageText", payload)

    def answer_callback(self, callback_id: str, text: str | None = None) -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        self._call("answerCallbackQuery", payload)

    def get_membership_role(self, room_id: str, user_id: str) -> str:
        result = self._call("getChatMember", {"chat_id": room_id, "user_id": int(user_id)})
        return "admin" if result.get("status") in ADMIN_STATUSES else "member"

    def get_updates(self, offset: int | None, timeout_seconds: int) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {
            "timeout": timeout_seconds,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        result = self._call("getUpdates", payload, timeout=timeout_seconds + 10)
        return result if isinstance(result, list) else []

    def set_my_commands(self, commands: list[tuple[str, str]]) -> None:
        self._call(
            "setMyCommands",
            {"commands": [{"command": name, "description": text} for name, text in commands]},
        )

    def get_me(self) -> dict[str, Any]:
        return self._call("getMe", {})
