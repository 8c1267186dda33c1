"""Patch operations produced by ``trellis.diff.diff``.

Patches are addressed positionally: ``path`` is the tuple of child indices
from the root to the node the patch applies to (for child patches, the
*parent*).  Nodes carry no identity across renders, so there is no other
handle to use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union


Path = tuple[int, ...]


@dataclass(frozen=True)
class ReplaceNode:
    """Swap the whole subtree at ``path`` for ``node``."""

    path: Path
    node: Any


@dataclass(frozen=True)
class UpdateAttributes:
    """Change attributes of the element at ``path``.

    ``set`` holds added or changed attributes, ``remove`` the names that no
    longer exist on the new element.
    """

    path: Path
    set: Mapping[str, Any] = field(default_factory=dict)
    remove: frozenset[str] = frozenset()


@dataclass(frozen=True)
class InsertChild:
    """Insert ``node`` as child ``index`` of the container at ``path``."""

    path: Path
    index: int
    node: Any


@dataclass(frozen=True)
class RemoveChild:
    """Remove child ``index`` of the container at ``path``."""

    path: Path
    index: int


@dataclass(frozen=True)
class MoveChild:
    """Move a child of the container at ``path`` from one index to another."""

    path: Path
    from_index: int
    to_index: int


@dataclass(frozen=True)
class ReplaceText:
    """Replace the payload of the text node at ``path``."""

    path: Path
    value: str


Patch = Union[ReplaceNode, UpdateAttributes, InsertChild, RemoveChild, MoveChild, ReplaceText]


def touched_path(patch: Patch) -> Path:
    """Return the path of the node whose rendered output a patch affects.

    For child patches this is the parent container, since siblings after the
    insertion or removal point shift.
    """
    return patch.path
