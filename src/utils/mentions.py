from __future__ import annotations

import re

from src.db.records import Member

MARKDOWN_SPECIAL = re.compile(r"([_*`\[\]])")
# Legacy Markdown takes link text literally; only brackets would end it early.
LABEL_BRACKETS = str.maketrans("[]", "()")


def escape_markdown(text: str) -> str:
    return MARKDOWN_SPECIAL.sub(r"\\\1", text)


def format_mention(member: Member) -> str:
    """Clickable mention: @handle when known, otherwise the display name."""
    label = f"@{member.handle}" if member.handle else member.display_name
    return f"[{label.translate(LABEL_BRACKETS)}](tg://user?id={member.id})"


def player_word(count: int) -> str:
    if count % 10 == 1 and count % 100 != 11:
        return "игрок"
    if 2 <= count % 10 <= 4 and not 10 <= count % 100 < 20:
        return "игрока"
    return "игроков"


def format_players_list(players: list[Member], max_display: int = 100) -> str:
    if not players:
        return "нет"
    shown = players[:max_display]
    if len(shown) <= 3:
        result = ", ".join(format_mention(player) for player in shown)
    else:
        lines = []
        for start in range(0, len(shown), 3):
            chunk = shown[start : start + 3]
            lines.append(
                "  ".join(
                    f"{start + idx + 1}. {format_mention(player)}"
                    for idx, player in enumerate(chunk)
                )
            )
        result = "\n".join(lines)
    remaining = len(players) - len(shown)
    if remaining > 0:
        result += f"\n...и ещё {remaining} {player_word(remaining)}"
    return result
