"""Tests for trellis.layout -- constraints, lengths and box placement."""

from __future__ import annotations

import math

import pytest

from trellis.layout import (
    Insets,
    LayoutConstraints,
    Length,
    Spacing,
    calculate_layout,
    resolve_absolute,
)
from trellis.nodes import TextNode, fragment, h


def layout(node, width: int = 80, height: int = 24):
    box = calculate_layout(node, LayoutConstraints.loose(width, height), width, height)
    return resolve_absolute(box)


class TestLayoutConstraints:
    """Normalisation and helpers."""

    def test_max_below_min_is_raised(self) -> None:
        c = LayoutConstraints(min_width=100, max_width=50)
        assert c.min_width == 100
        assert c.max_width == 100

    def test_negative_minimums_become_zero(self) -> None:
        c = LayoutConstraints(min_width=-5, min_height=-1, max_width=10, max_height=10)
        assert c.min_width == 0
        assert c.min_height == 0

    def test_tight_and_loose(self) -> None:
        assert LayoutConstraints.tight(10, 5).is_tight
        loose = LayoutConstraints.loose(10, 5)
        assert not loose.is_tight
        assert loose.is_bounded
        assert not LayoutConstraints.unconstrained().is_bounded

    def test_constrain_clamps(self) -> None:
        c = LayoutConstraints(2, 10, 1, 3)
        assert c.constrain_width(0) == 2
        assert c.constrain_width(50) == 10
        assert c.constrain_height(2) == 2

    def test_deflate_never_goes_negative(self) -> None:
        c = LayoutConstraints(0, 4, 0, 2).deflate(Insets(3, 3, 3, 3))
        assert c.max_width == 0
        assert c.max_height == 0

    def test_intersect_stays_within_bounds(self) -> None:
        c = LayoutConstraints(0, 20, 0, 20).intersect(min_width=30, max_height=5)
        assert c.min_width == 20
        assert c.max_height == 5

    def test_unbounded_size_cannot_be_materialised(self) -> None:
        with pytest.raises(ValueError):
            LayoutConstraints.unconstrained().constrain_width(math.inf)


class TestLength:
    def test_parse(self) -> None:
        assert Length.parse(5) == Length.px(5)
        assert Length.parse("50%") == Length.percent(50)
        assert Length.parse("auto").is_auto
        assert Length.parse(None).is_auto
        assert Length.parse("3px") == Length.px(3)

    def test_invalid_length(self) -> None:
        with pytest.raises(ValueError):
            Length.parse("wide")

    def test_percent_of_unbounded_base_is_auto(self) -> None:
        assert Length.percent(50).resolve(None) is None
        assert Length.percent(50).resolve(math.inf) is None
        assert Length.percent(50).resolve(81) == 40

    def test_spacing_shorthands(self) -> None:
        assert Spacing.parse(1).resolve(10, 10) == Insets(1, 1, 1, 1)
        assert Spacing.parse((1, 2)).resolve(10, 10) == Insets(1, 2, 1, 2)
        assert Spacing.parse((1, 2, 3, 4)).resolve(10, 10) == Insets(1, 2, 3, 4)
        with pytest.raises(ValueError):
            Spacing.parse((1, 2, 3))


class TestCalculateLayout:
    """Sizing and placement."""

    def test_text_sizes_to_content(self) -> None:
        box = layout(TextNode("hello\nworld!"))
        assert (box.width, box.height) == (6, 2)

    def test_vertical_stacking(self) -> None:
        box = layout(h("vstack", None, "one", "three", "x"))
        assert [c.abs_y for c in box.children] == [0, 1, 2]
        assert (box.width, box.height) == (5, 3)

    def test_horizontal_stacking_with_spacing(self) -> None:
        box = layout(h("hstack", {"spacing": 1}, h("box", {"width": 3}), h("box", {"width": 4})))
        assert [c.abs_x for c in box.children] == [0, 4]
        assert box.width == 8

    def test_direction_attribute_overrides_tag(self) -> None:
        box = layout(h("box", {"direction": "horizontal"}, "ab", "cd"))
        assert [c.abs_x for c in box.children] == [0, 2]

    def test_percentage_width(self) -> None:
        box = layout(h("vstack", None, h("box", {"width": "50%"})), width=80)
        assert box.children[0].width == 40

    def test_percentage_against_unbounded_parent_is_auto(self) -> None:
        box = calculate_layout(h("box", {"width": "50%"}, "abc"), LayoutConstraints.unconstrained())
        assert box.width == 3

    def test_padding(self) -> None:
        box = layout(h("box", {"padding": 1}, "hi"))
        assert (box.width, box.height) == (4, 3)
        text_box = box.children[0]
        assert (text_box.abs_x, text_box.abs_y) == (1, 1)
        assert box.content_rect == (1, 1, 2, 1)

    def test_margin_offsets_box(self) -> None:
        box = layout(h("vstack", None, h("box", {"margin": (1, 2)}, "x"), "y"))
        first, second = box.children
        assert (first.abs_x, first.abs_y) == (2, 1)
        assert second.abs_y == 3
        assert first.outer_height == 3

    def test_sizes_respect_min_and_max(self) -> None:
        box = layout(h("box", {"min_width": 10, "max_height": 1}, "a\nb\nc"))
        assert box.width == 10
        assert box.height == 1

    def test_size_beyond_max_is_clamped(self) -> None:
        box = layout(h("box", {"width": 500}), width=40)
        assert box.width == 40

    def test_children_never_exceed_parent_bounds(self) -> None:
        box = layout(h("vstack", None, *[f"line {i}" for i in range(30)]), width=20, height=10)
        assert box.height == 10
        for child in box.walk():
            assert 0 <= child.width <= 20
            assert 0 <= child.height <= 10

    def test_grow_shares_leftover_space(self) -> None:
        box = layout(h("hstack", {"width": 20}, h("box", {"grow": 1}), h("box", {"width": 5})))
        first, second = box.children
        assert first.width == 15
        assert second.abs_x == 15

    def test_align_center_and_end(self) -> None:
        box = layout(h("vstack", {"width": 10},
                       h("box", {"width": 4, "align": "center"}),
                       h("box", {"width": 4, "align": "end"})))
        assert [c.abs_x for c in box.children] == [3, 6]

    def test_overlay_stacks_at_origin(self) -> None:
        box = layout(h("zstack", None, "long text", "ab"))
        assert [(c.abs_x, c.abs_y) for c in box.children] == [(0, 0), (0, 0)]
        assert box.width == 9

    def test_fragment_is_transparent(self) -> None:
        box = layout(h("vstack", None, fragment("a", "b"), "c"))
        assert box.children[1].abs_y == 2
        assert [c.abs_y for c in box.children[0].children] == [0, 1]

    def test_absolute_positions_accumulate(self) -> None:
        tree = h("box", {"padding": 1}, h("box", {"padding": (0, 2)}, "x"))
        box = layout(tree)
        inner_text = box.find((0, 0))
        assert inner_text is not None
        assert (inner_text.abs_x, inner_text.abs_y) == (3, 1)

    def test_paths_mirror_the_node_tree(self) -> None:
        box = layout(h("vstack", None, h("box", None, "a"), "b"))
        assert [b.path for b in box.walk()] == [(), (0,), (0, 0), (1,)]
