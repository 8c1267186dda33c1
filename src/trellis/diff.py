"""Tree diffing and patch application.

``diff(previous, next)`` walks both trees in lockstep and returns an ordered
list of positional patches; ``apply_patches(tree, patches)`` replays such a
list against an immutable tree and returns the resulting tree.

Rules:

* A variant change (element/text/fragment), a differing tag, or differing
  non-null keys at the same position produce a single ``ReplaceNode`` and the
  subtree below is not visited.
* Elements of the same tag are compared attribute-by-attribute; only added or
  changed values go into ``UpdateAttributes.set`` and vanished names into
  ``UpdateAttributes.remove``.
* Children are compared positionally.  Surplus new children become
  ``InsertChild`` patches appended at the tail; surplus old children become
  ``RemoveChild`` patches emitted from the highest index down so every index
  is still valid when the patch is applied.
* Anything that is not a recognised node variant is always replaced.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from trellis.nodes import ElementNode, FragmentNode, NODE_TYPES, TextNode, children_of
from trellis.patches import (
    InsertChild,
    MoveChild,
    Patch,
    Path,
    RemoveChild,
    ReplaceNode,
    ReplaceText,
    UpdateAttributes,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------


def diff(previous: Any, next: Any) -> list[Patch]:
    """Return the patches that transform *previous* into *next*."""
    patches: list[Patch] = []
    _diff_node(previous, next, (), patches)
    return patches


def is_same_kind(old: Any, new: Any) -> bool:
    """Whether *old* and *new* can be updated in place rather than replaced."""
    if not isinstance(old, NODE_TYPES) or not isinstance(new, NODE_TYPES):
        return False
    if type(old) is not type(new):
        return False
    if isinstance(old, ElementNode) and old.tag != new.tag:
        return False
    if old.key is not None and new.key is not None and old.key != new.key:
        return False
    return True


def _diff_node(old: Any, new: Any, path: Path, out: list[Patch]) -> None:
    if old is new and isinstance(old, NODE_TYPES):
        return

    if not is_same_kind(old, new):
        out.append(ReplaceNode(path, new))
        return

    if isinstance(new, TextNode):
        if old.value != new.value:
            out.append(ReplaceText(path, new.value))
        return

    if isinstance(new, ElementNode):
        _diff_attrs(old, new, path, out)

    _diff_children(children_of(old), children_of(new), path, out)


def _diff_attrs(old: ElementNode, new: ElementNode, path: Path, out: list[Patch]) -> None:
    to_set: dict[str, Any] = {}
    for name, value in new.attrs.items():
        if name not in old.attrs or not _attr_equal(old.attrs[name], value):
            to_set[name] = value
    to_remove = frozenset(name for name in old.attrs if name not in new.attrs)
    if to_set or to_remove:
        out.append(UpdateAttributes(path, to_set, to_remove))


def _attr_equal(a: Any, b: Any) -> bool:
    if a is b:
        return True
    try:
        return bool(a == b)
    except Exception:
        # Values with exotic __eq__ (e.g. arrays) are treated as changed.
        logger.debug("attribute comparison failed for %r and %r", a, b)
        return False


def _diff_children(
    old_children: tuple[Any, ...],
    new_children: tuple[Any, ...],
    path: Path,
    out: list[Patch],
) -> None:
    common = min(len(old_children), len(new_children))
    for i in range(common):
        _diff_node(old_children[i], new_children[i], path + (i,), out)

    for i in range(common, len(new_children)):
        out.append(InsertChild(path, i, new_children[i]))

    for i in range(len(old_children) - 1, common - 1, -1):
        out.append(RemoveChild(path, i))


# ---------------------------------------------------------------------------
# apply_patches
# ---------------------------------------------------------------------------


def apply_patches(tree: Any, patches: list[Patch]) -> Any:
    """Apply *patches* in order to *tree* and return the new tree.

    The input tree is never modified.  Callers must apply a patch list only
    to the tree it was computed from.
    """
    for patch in patches:
        tree = apply_patch(tree, patch)
    return tree


def apply_patch(tree: Any, patch: Patch) -> Any:
    if isinstance(patch, ReplaceNode):
        return _update_at(tree, patch.path, lambda _node: patch.node)

    if isinstance(patch, ReplaceText):
        return _update_at(tree, patch.path, lambda node: TextNode(patch.value, node.key))

    if isinstance(patch, UpdateAttributes):
        def _update(node: ElementNode) -> ElementNode:
            attrs = {k: v for k, v in node.attrs.items() if k not in patch.remove}
            attrs.update(patch.set)
            return node.with_attrs(attrs)
        return _update_at(tree, patch.path, _update)

    if isinstance(patch, InsertChild):
        def _insert(node: Any) -> Any:
            kids = list(children_of(node))
            kids.insert(patch.index, patch.node)
            return node.with_children(kids)
        return _update_at(tree, patch.path, _insert)

    if isinstance(patch, RemoveChild):
        def _remove(node: Any) -> Any:
            kids = list(children_of(node))
            del kids[patch.index]
            return node.with_children(kids)
        return _update_at(tree, patch.path, _remove)

    if isinstance(patch, MoveChild):
        def _move(node: Any) -> Any:
            kids = list(children_of(node))
            kids.insert(patch.to_index, kids.pop(patch.from_index))
            return node.with_children(kids)
        return _update_at(tree, patch.path, _move)

    raise TypeError(f"Unknown patch type: {type(patch).__name__}")


def _update_at(node: Any, path: Path, fn: Callable[[Any], Any]) -> Any:
    """Rebuild the spine from the root to *path*, replacing the target with ``fn(target)``."""
    if not path:
        return fn(node)
    if not isinstance(node, (ElementNode, FragmentNode)):
        raise IndexError(f"Patch path descends into a leaf node: {path!r}")
    index = path[0]
    kids = list(node.children)
    kids[index] = _update_at(kids[index], path[1:], fn)
    return node.with_children(kids)
