"""Tests for trellis.style -- colours, modifiers and SGR generation."""

from __future__ import annotations

import pytest

from trellis.style import (
    COLOR_16,
    COLOR_256,
    DEFAULT_STYLE,
    TRUECOLOR,
    Color,
    Modifier,
    Style,
    coerce_style,
    detect_color_mode,
    rgb_to_256,
    sgr,
)


class TestColor:
    def test_parse_forms(self) -> None:
        assert Color.parse("red") == Color.index(1)
        assert Color.parse("#102030") == Color.rgb(16, 32, 48)
        assert Color.parse(200) == Color.index(200)
        assert Color.parse((1, 2, 3)) == Color.rgb(1, 2, 3)
        assert Color.parse("default") is None
        assert Color.parse(None) is None

    def test_unknown_name_raises(self) -> None:
        with pytest.raises(ValueError):
            Color.parse("not-a-colour")

    def test_values_are_clamped(self) -> None:
        assert Color.index(300).value == 255
        assert Color.rgb(-1, 0, 999).value == (0, 0, 255)

    def test_codes_per_mode(self) -> None:
        c = Color.rgb(255, 0, 0)
        assert c.codes(True, TRUECOLOR) == ["38", "2", "255", "0", "0"]
        assert c.codes(False, COLOR_256) == ["48", "5", str(rgb_to_256(255, 0, 0))]
        assert c.codes(True, COLOR_16) == ["31"]
        assert Color.index(9).codes(True) == ["91"]
        assert Color.index(100).codes(True, COLOR_256) == ["38", "5", "100"]

    def test_palette_index_codes(self) -> None:
        assert Color.index(3).codes(False, TRUECOLOR) == ["43"]
        assert Color.index(200).codes(True, TRUECOLOR) == ["38", "5", "200"]
        assert Color.index(200).codes(False, COLOR_16) == ["100"]

    def test_rgb_to_256(self) -> None:
        assert rgb_to_256(0, 0, 0) == 16
        assert rgb_to_256(255, 255, 255) == 231
        assert rgb_to_256(255, 0, 0) == 196


class TestStyle:
    def test_of_builds_modifiers(self) -> None:
        style = Style.of("red", "blue", bold=True, underline=True)
        assert style.has(Modifier.BOLD)
        assert style.has(Modifier.UNDERLINE)
        assert not style.has(Modifier.ITALIC)
        assert style.bg == Color.index(4)

    def test_merge_layers_colours_and_accumulates_modifiers(self) -> None:
        base = Style.of("red", bold=True)
        top = Style.of(bg="blue", italic=True)
        merged = base.merge(top)
        assert merged.fg == Color.index(1)
        assert merged.bg == Color.index(4)
        assert merged.has(Modifier.BOLD) and merged.has(Modifier.ITALIC)
        assert base.merge(None) is base

    def test_default(self) -> None:
        assert DEFAULT_STYLE.is_default
        assert not Style.of(dim=True).is_default

    def test_coerce(self) -> None:
        assert coerce_style({"fg": "green"}) == Style.of("green")
        assert coerce_style(None) is None
        with pytest.raises(TypeError):
            coerce_style(42)


class TestSgr:
    def test_default_is_plain_reset(self) -> None:
        assert sgr(DEFAULT_STYLE) == "\x1b[0m"

    def test_modifiers_then_colours(self) -> None:
        style = Style.of("#010203", "green", bold=True, inverse=True)
        assert sgr(style) == "\x1b[0;1;7;38;2;1;2;3;42m"


class TestDetectColorMode:
    def test_detection(self) -> None:
        assert detect_color_mode({"COLORTERM": "truecolor"}) == TRUECOLOR
        assert detect_color_mode({"TERM": "xterm-256color"}) == COLOR_256
        assert detect_color_mode({"TERM": "vt100"}) == COLOR_16
