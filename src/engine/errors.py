from __future__ import annotations

from typing import Any


class SignupError(Exception):
    """Base for every failure the interaction boundary turns into a reply."""

    code = "signup_error"
    default_message = "Что-то пошло не так."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SignupError, ValueError):
    code = "validation_error"


class InvalidDate(ValidationError):
    code = "invalid_date"
    default_message = (
        "⚠️ Неверная дата. Используй YYYY-MM-DD, ДД.ММ, ДД.ММ.ГГГГ "
        "или «сегодня» / «завтра» / «послезавтра». Дата не может быть в прошлом."
    )


class InvalidTime(ValidationError):
    code = "invalid_time"
    default_message = "⚠️ Неверное время. Используй HH:MM (например: 19:00)."


class InvalidFormat(ValidationError):
    code = "invalid_format"

    def __init__(self, known_formats: list[str] | None = None) -> None:
        message = "⚠️ Неизвестный формат."
        if known_formats:
            message += f" Доступно: {' | '.join(known_formats)}"
        super().__init__(message)


class IncompleteDraft(ValidationError):
    code = "incomplete_draft"
    default_message = "⚠️ Заполни все поля: формат, дату и время."


class AuthorizationError(SignupError):
    code = "authorization_error"


class NotAuthorized(AuthorizationError):
    code = "not_authorized"
    default_message = "🚫 Это действие доступно только администраторам."


class ConflictError(SignupError):
    code = "conflict"


class SessionAlreadyActive(ConflictError):
    code = "session_already_active"
    default_message = "⚠️ В этом чате уже запущено голосование. Заверши его командой /end_vote."

    def __init__(self, existing: Any | None = None) -> None:
        self.existing = existing
        super().__init__()


class NoActiveSession(ConflictError):
    code = "no_active_session"
    default_message = "ℹ️ Активного голосования нет. Запустить: /start_vote"


class DraftNotFound(ConflictError):
    code = "draft_not_found"
    default_message = "ℹ️ Нет активной настройки. Начни с команды /start_vote"


class TransportError(SignupError):
    code = "transport_error"
    default_message = "🚫 Не удалось связаться с Telegram. Попробуйте позже."


class MessageNotModified(TransportError):
    code = "message_not_modified"
