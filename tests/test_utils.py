"""Tests for trellis.utils -- grapheme segmentation and display width."""

from __future__ import annotations

from trellis.utils import grapheme_width, split_graphemes, strip_ansi, text_size, visible_width


# ---------------------------------------------------------------------------
# visible_width
# ---------------------------------------------------------------------------


class TestVisibleWidth:
    """Measure the visible terminal width of one line of text."""

    def test_plain_ascii(self) -> None:
        assert visible_width("hello") == 5

    def test_empty_string(self) -> None:
        assert visible_width("") == 0

    def test_ansi_codes_do_not_count(self) -> None:
        assert visible_width("\x1b[1m\x1b[31mabc\x1b[0m") == 3

    def test_wide_cjk_characters_count_as_two(self) -> None:
        assert visible_width("中文") == 4

    def test_tab_counts_as_three(self) -> None:
        assert visible_width("a\tb") == 5

    def test_only_first_line_is_measured(self) -> None:
        assert visible_width("ab\nlonger line") == 2
        assert visible_width("中\nxxxxxx") == 2


class TestTextSize:
    def test_widest_line_and_line_count(self) -> None:
        assert text_size("ab\nlonger line") == (11, 2)

    def test_empty(self) -> None:
        assert text_size("") == (0, 0)


# ---------------------------------------------------------------------------
# Graphemes
# ---------------------------------------------------------------------------


class TestGraphemes:
    def test_combining_mark_stays_with_base(self) -> None:
        assert split_graphemes("e\u0301x") == ["e\u0301", "x"]

    def test_control_characters_have_no_width(self) -> None:
        assert grapheme_width("\x1b") == 0
        assert grapheme_width("") == 0

    def test_emoji_presentation_is_wide(self) -> None:
        assert grapheme_width("❤️") == 2

    def test_strip_ansi(self) -> None:
        assert strip_ansi("\x1b[31mred\x1b[0m \x1b]8;;http://x\x07link\x1b]8;;\x07") == "red link"
