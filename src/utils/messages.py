from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from src.bot.events import CallbackPayload, VoteCallback
from src.db.records import Draft, Member, Session
from src.engine.schedule import format_date_label, render_schedule_line, resolve_status
from src.engine.voting import Tally
from src.sessions.wizard import WizardAction, previous_step
from src.utils.mentions import escape_markdown, format_mention, format_players_list, player_word

STATUS_LABELS = {"confirmed": "точно", "tentative": "предварительно"}
TIME_PRESETS = ("18:00", "19:00", "20:00", "21:00")


@dataclass(frozen=True)
class Button:
    text: str
    payload: CallbackPayload


@dataclass(frozen=True)
class Reply:
    text: str
    buttons: list[list[Button]] = field(default_factory=list)
    markdown: bool = False


def vote_keyboard(session_id: int) -> list[list[Button]]:
    return [
        [Button("✅ Играю", VoteCallback("yes", session_id))],
        [Button("🤔 Не знаю", VoteCallback("maybe", session_id))],
        [Button("❌ Не играю", VoteCallback("no", session_id))],
    ]


def _format_header(session: Session) -> str:
    return f"{session.format} (нужно {session.needed_players} {player_word(session.needed_players)})"


def schedule_line(session: Session) -> str:
    return render_schedule_line(session.date, session.time, session.schedule_status)


def announcement(session: Session) -> Reply:
    text = (
        "⚽ Голосование началось!\n"
        f"Формат: {_format_header(session)}\n"
        f"{schedule_line(session)}\n\n"
        "Кто играет?"
    )
    return Reply(text=text, buttons=vote_keyboard(session.id))


def vote_board(session: Session, tally: Tally) -> Reply:
    text = (
        f"⚽ Формат: {session.format}\n"
        f"{escape_markdown(schedule_line(session))}\n"
        f"✅ Играют: {format_players_list(tally.yes)}\n"
        f"🤔 Думают: {format_players_list(tally.maybe)}\n"
        f"❌ Не играют: {format_players_list(tally.no)}\n\n"
        f"Игроков нужно: {session.needed_players}, уже есть: {len(tally.yes)}"
    )
    buttons = vote_keyboard(session.id) if session.is_active else []
    return Reply(text=text, buttons=buttons, markdown=True)


def quota_reached(session: Session) -> Reply:
    return Reply(
        text=(
            f"🎉 Набралось {session.needed_players} {player_word(session.needed_players)}! "
            "Матч состоится! Сбор закрыт ✅"
        )
    )


def session_summary(session: Session) -> str:
    return (
        f"⚠️ В этом чате уже запущено голосование (формат: {session.format}).\n"
        f"{schedule_line(session)}\n"
        "Чтобы начать новое, заверши текущее командой /end_vote."
    )


def session_ended() -> Reply:
    return Reply(text="✅ Голосование завершено. Можно запустить новое: /start_vote")


def schedule_updated(session: Session) -> Reply:
    return Reply(text=f"✅ Дата и время обновлены!\n{schedule_line(session)}")


def reminder(mentions: list[Member], vote_url: str | None) -> Reply:
    link = f" [Голосование]({vote_url})" if vote_url else ""
    text = (
        f"⏰ Напоминание! Проголосуйте, если ещё не отметились.{link}\n"
        + ", ".join(format_mention(member) for member in mentions)
    )
    return Reply(text=text, markdown=True)


def _draft_summary(draft: Draft, formats: dict[str, int]) -> str:
    fmt = f"{draft.format} (нужно {formats.get(draft.format, 0)})" if draft.format else "—"
    status = STATUS_LABELS.get(draft.schedule_status or "", "—")
    when = format_date_label(draft.date) if draft.date else "—"
    effective = resolve_status(draft.schedule_status, draft.date, draft.time)
    lines = [
        "📋 Настройка голосования",
        f"⚽ Формат: {fmt}",
        f"📌 Статус: {status}",
        f"📅 Дата: {when}",
        f"🕐 Время: {draft.time or '—'}",
    ]
    if draft.format and (draft.date or draft.time):
        lines.append(render_schedule_line(draft.date, draft.time, effective))
    return "\n".join(lines)


def _nav_row(draft: Draft) -> list[Button]:
    row = [Button("🚫 Отмена", WizardAction("cancel"))]
    if draft.step != "format":
        row.insert(0, Button("⬅️ Назад", WizardAction("goto", previous_step(draft.step))))
    return row


def wizard_prompt(
    draft: Draft,
    formats: dict[str, int],
    today: date,
    notice: str | None = None,
) -> Reply:
    """Render the current wizard step with its keyboard."""
    summary = _draft_summary(draft, formats)
    buttons: list[list[Button]] = []
    if draft.step == "format":
        question = "Выбери формат игры:"
        names = list(formats)
        for start in range(0, len(names), 2):
            buttons.append(
                [Button(name, WizardAction("format", name)) for name in names[start : start + 2]]
            )
    elif draft.step == "status":
        question = "Дата и время уже точные или предварительные?"
        buttons.append(
            [
                Button("✅ Точно", WizardAction("status", "confirmed")),
                Button("🤔 Предварительно", WizardAction("status", "tentative")),
            ]
        )
    elif draft.step == "date":
        question = "Выбери дату или напиши её (ДД.ММ, ДД.ММ.ГГГГ, YYYY-MM-DD):"
        labels = ("Сегодня", "Завтра", "Послезавтра")
        buttons.append(
            [
                Button(label, WizardAction("date", (today + timedelta(days=offset)).isoformat()))
                for offset, label in enumerate(labels)
            ]
        )
    elif draft.step == "time":
        question = "Выбери время или напиши его (HH:MM):"
        buttons.append([Button(preset, WizardAction("time", preset)) for preset in TIME_PRESETS])
    else:
        question = "Всё готово? Проверь настройки и запускай."
        buttons.append([Button("🚀 Запустить", WizardAction("launch"))])
        buttons.append(
            [
                Button("✏️ Формат", WizardAction("goto", "format")),
                Button("✏️ Статус", WizardAction("goto", "status")),
            ]
        )
        buttons.append(
            [
                Button("✏️ Дата", WizardAction("goto", "date")),
                Button("✏️ Время", WizardAction("goto", "time")),
            ]
        )
    buttons.append(_nav_row(draft))
    parts = [summary, "", question]
    if notice:
        parts.insert(0, notice)
    return Reply(text="\n".join(parts), buttons=buttons)
