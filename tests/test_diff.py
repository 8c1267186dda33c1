"""Tests for trellis.diff -- tree diffing and patch application."""

from __future__ import annotations

import pytest

from trellis.diff import apply_patch, apply_patches, diff, is_same_kind
from trellis.layout import LayoutConstraints, calculate_layout, resolve_absolute
from trellis.nodes import TextNode, fragment, h
from trellis.painter import paint_to_lines
from trellis.patches import (
    InsertChild,
    MoveChild,
    RemoveChild,
    ReplaceNode,
    ReplaceText,
    UpdateAttributes,
)


def _lines(tree, width: int = 20, height: int = 4) -> list[str]:
    box = resolve_absolute(calculate_layout(tree, LayoutConstraints.loose(width, height), width, height))
    return paint_to_lines(box, width, height)


SAMPLES = [
    (h("box", None, "a"), h("box", None, "b")),
    (h("vstack", None, "one", "two"), h("vstack", None, "one")),
    (h("vstack", None, "one"), h("vstack", None, "one", "two", "three")),
    (h("box", {"width": 5, "style": {"fg": "red"}}), h("box", {"width": 6})),
    (h("box", None, "x"), h("hstack", None, "x", "y")),
    (h("vstack", None, h("box", {"key": "a"}, "A")), h("vstack", None, h("box", {"key": "b"}, "B"))),
    (fragment("a", h("box", None, "b")), fragment(h("box", None, "b"))),
    (TextNode("old"), h("box", None, "new")),
]


class TestDiff:
    """Patch generation rules."""

    def test_identical_trees_produce_no_patches(self) -> None:
        tree = h("vstack", {"spacing": 1}, h("text", None, "a"), fragment("b"))
        assert diff(tree, tree) == []
        assert diff(tree, h("vstack", {"spacing": 1}, h("text", None, "a"), fragment("b"))) == []

    def test_tag_change_replaces_node(self) -> None:
        new = h("hstack", None, "x")
        assert diff(h("vstack", None, "x"), new) == [ReplaceNode((), new)]

    def test_variant_change_replaces_node(self) -> None:
        new = h("box")
        assert diff(TextNode("x"), new) == [ReplaceNode((), new)]

    def test_key_change_replaces_node(self) -> None:
        old = h("vstack", None, h("box", {"key": "a"}))
        new_child = h("box", {"key": "b"})
        assert diff(old, h("vstack", None, new_child)) == [ReplaceNode((0,), new_child)]

    def test_key_added_is_not_a_replacement(self) -> None:
        assert is_same_kind(h("box"), h("box", {"key": "a"}))

    def test_text_change(self) -> None:
        patches = diff(h("box", None, "old"), h("box", None, "new"))
        assert patches == [ReplaceText((0,), "new")]

    def test_attribute_set_and_remove(self) -> None:
        patches = diff(h("box", {"a": 1, "b": 2}), h("box", {"a": 1, "c": 3}))
        assert patches == [UpdateAttributes((), {"c": 3}, frozenset({"b"}))]

    def test_unchanged_attributes_are_not_reported(self) -> None:
        patches = diff(h("box", {"a": 1}, "x"), h("box", {"a": 1}, "y"))
        assert not any(isinstance(p, UpdateAttributes) for p in patches)

    def test_inserts_append_at_tail(self) -> None:
        patches = diff(h("vstack", None, "a"), h("vstack", None, "a", "b", "c"))
        assert patches == [
            InsertChild((), 1, TextNode("b")),
            InsertChild((), 2, TextNode("c")),
        ]

    def test_removes_run_highest_index_first(self) -> None:
        patches = diff(h("vstack", None, "a", "b", "c"), h("vstack", None, "a"))
        assert patches == [RemoveChild((), 2), RemoveChild((), 1)]


class TestApplyPatches:
    """apply_patches(previous, diff(previous, next)) reproduces next."""

    @pytest.mark.parametrize("old,new", SAMPLES)
    def test_patched_tree_equals_target(self, old, new) -> None:
        assert apply_patches(old, diff(old, new)) == new

    @pytest.mark.parametrize("old,new", SAMPLES)
    def test_patched_tree_paints_like_target(self, old, new) -> None:
        assert _lines(apply_patches(old, diff(old, new))) == _lines(new)

    def test_input_tree_is_untouched(self) -> None:
        old = h("vstack", None, "a", "b")
        snapshot = h("vstack", None, "a", "b")
        apply_patches(old, diff(old, h("vstack", None, "z")))
        assert old == snapshot

    def test_move_child(self) -> None:
        tree = h("vstack", None, "a", "b", "c")
        moved = apply_patch(tree, MoveChild((), 0, 2))
        assert [c.value for c in moved.children] == ["b", "c", "a"]

    def test_path_into_leaf_raises(self) -> None:
        with pytest.raises(IndexError):
            apply_patch(TextNode("x"), ReplaceText((0,), "y"))
