"""Tests for trellis.painter -- styles, clipping, z-order and hit regions."""

from __future__ import annotations

from trellis.buffer import Rect, TerminalBuffer
from trellis.layout import LayoutConstraints, calculate_layout, resolve_absolute
from trellis.nodes import h
from trellis.painter import Painter, paint_to_lines
from trellis.style import Color, Modifier, Style


def layout(node, width: int = 20, height: int = 5):
    return resolve_absolute(calculate_layout(node, LayoutConstraints.loose(width, height), width, height))


def paint(node, width: int = 20, height: int = 5, **kwargs):
    buf = TerminalBuffer(width, height)
    result = Painter(buf, **kwargs).paint(layout(node, width, height))
    return buf, result


class TestText:
    def test_text_is_placed_at_its_box(self) -> None:
        lines = paint_to_lines(layout(h("box", {"padding": (1, 2)}, "hi")), 10, 3)
        assert lines[1] == "  hi      "

    def test_multiline_text(self) -> None:
        lines = paint_to_lines(layout(h("box", None, "ab\ncd")), 4, 2)
        assert lines == ["ab  ", "cd  "]

    def test_text_is_clipped_to_parent(self) -> None:
        lines = paint_to_lines(layout(h("box", {"width": 3}, "abcdef")), 8, 1)
        assert lines == ["abc     "]


class TestStyles:
    """Cascade from element to text."""

    def test_text_inherits_element_style(self) -> None:
        buf, _ = paint(h("box", {"style": {"fg": "red", "bold": True}}, "x"))
        cell = buf.back.get(0, 0)
        assert cell.style.fg == Color.parse("red")
        assert cell.style.has(Modifier.BOLD)

    def test_nested_styles_merge(self) -> None:
        tree = h("box", {"style": Style.of("red")}, h("box", {"style": {"bg": "blue"}}, "x"))
        buf, _ = paint(tree)
        style = buf.back.get(0, 0).style
        assert style.fg == Color.parse("red")
        assert style.bg == Color.parse("blue")

    def test_background_fills_element_rect(self) -> None:
        buf, _ = paint(h("box", {"width": 4, "height": 2, "style": {"bg": "green"}}))
        assert all(buf.back.get(x, y).style.bg == Color.parse("green")
                   for x in range(4) for y in range(2))
        assert buf.back.get(4, 0).style.bg is None

    def test_theme_names(self) -> None:
        theme = {"accent": Style.of("cyan")}
        buf, _ = paint(h("box", {"style": "accent"}, "x"), theme=theme)
        assert buf.back.get(0, 0).style.fg == Color.parse("cyan")

    def test_default_style_applies_to_plain_text(self) -> None:
        buf, _ = paint(h("box", None, "x"), default_style=Style.of(dim=True))
        assert buf.back.get(0, 0).style.has(Modifier.DIM)

    def test_focus_style_only_when_focused(self) -> None:
        tree = h("box", {"key": "f", "focusable": True, "focus_style": {"inverse": True}}, "x")
        buf = TerminalBuffer(5, 1)
        box = layout(tree, 5, 1)
        Painter(buf).paint(box, focused_key=None)
        assert not buf.back.get(0, 0).style.has(Modifier.INVERSE)
        Painter(buf).paint(box, focused_key="f")
        assert buf.back.get(0, 0).style.has(Modifier.INVERSE)


class TestZOrder:
    def test_higher_z_index_paints_on_top(self) -> None:
        tree = h("zstack", None, h("box", {"z_index": 1}, "A"), h("box", None, "B"))
        lines = paint_to_lines(layout(tree), 3, 1)
        assert lines == ["A  "]

    def test_equal_z_uses_document_order(self) -> None:
        tree = h("zstack", None, h("box", None, "A"), h("box", None, "B"))
        assert paint_to_lines(layout(tree), 3, 1) == ["B  "]

    def test_z_index_is_relative_to_parent(self) -> None:
        tree = h("zstack", None,
                 h("box", {"z_index": 2}, h("box", {"z_index": -1}, "A")),
                 h("box", {"z_index": 0}, "B"))
        assert paint_to_lines(layout(tree), 3, 1) == ["A  "]


class TestPaintResult:
    """Hit regions and focus targets."""

    def test_clickable_and_focusable_regions(self) -> None:
        tree = h("vstack", None,
                 h("box", {"key": "a", "on_click": lambda e: None}, "first"),
                 h("box", {"key": "b", "focusable": True}, "second"),
                 h("box", None, "plain"))
        _, result = paint(tree)
        assert [r.key for r in result.hit_regions] == ["a", "b"]
        assert [t.key for t in result.focusables] == ["b"]
        assert result.focusables[0].rect == Rect(0, 1, 6, 1)

    def test_hit_test_prefers_topmost(self) -> None:
        tree = h("zstack", None,
                 h("box", {"key": "low", "z_index": 0, "on_click": lambda e: None}, "xxxx"),
                 h("box", {"key": "high", "z_index": 5, "on_click": lambda e: None}, "yy"))
        _, result = paint(tree)
        assert result.hit_test(1, 0).key == "high"
        assert result.hit_test(3, 0).key == "low"
        assert result.hit_test(10, 3) is None

    def test_clip_limits_writes_but_not_regions(self) -> None:
        tree = h("vstack", None, h("box", {"key": "a", "on_click": lambda e: None}, "abc"), "def")
        buf = TerminalBuffer(5, 2)
        result = Painter(buf).paint(layout(tree, 5, 2), clip=Rect(0, 1, 5, 1))
        assert buf.back.lines() == ["     ", "def  "]
        assert len(result.hit_regions) == 1
