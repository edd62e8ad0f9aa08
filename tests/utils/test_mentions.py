from __future__ import annotations

from src.db.records import Member
from src.utils.mentions import escape_markdown, format_mention, format_players_list, player_word


def _members(count: int) -> list[Member]:
    return [Member(id=str(i), display_name=f"P{i}") for i in range(1, count + 1)]


def test_mention_label_is_not_escaped():
    assert format_mention(Member("7", "Ivan", "ivan_p")) == "[@ivan_p](tg://user?id=7)"
    assert format_mention(Member("8", "Anna [GK]")) == "[Anna (GK)](tg://user?id=8)"


def test_escape_markdown_leaves_plain_text():
    assert escape_markdown("вс, 25 окт. в 19:00") == "вс, 25 окт. в 19:00"


def test_player_word_plural_forms():
    assert [player_word(n) for n in (1, 2, 5, 11, 12, 21, 22, 25)] == [
        "игрок",
        "игрока",
        "игроков",
        "игроков",
        "игроков",
        "игрок",
        "игрока",
        "игроков",
    ]


def test_short_list_is_comma_separated():
    assert format_players_list([]) == "нет"
    assert format_players_list(_members(2)) == (
        "[P1](tg://user?id=1), [P2](tg://user?id=2)"
    )


def test_long_list_is_numbered_three_per_line():
    lines = format_players_list(_members(4)).split("\n")
    assert len(lines) == 2
    assert lines[0].startswith("1. [P1]")
    assert lines[1] == "4. [P4](tg://user?id=4)"


def test_overflow_is_summarised():
    text = format_players_list(_members(5), max_display=3)
    assert text.endswith("...и ещё 2 игрока")
