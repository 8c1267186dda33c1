"""Immutable UI node model.

A UI is described as a tree of three node variants:

* ``ElementNode`` -- a tag, an attribute mapping and ordered children.
* ``TextNode`` -- a string payload.
* ``FragmentNode`` -- ordered children with no tag, attributes or cell of its
  own; a transparent grouping construct.

Nodes are frozen.  Every render produces a brand-new tree, which is what makes
``trellis.diff.diff`` well-defined.  Trees are normally built with :func:`h`,
:func:`text` and :func:`fragment`, or incrementally with
:class:`ElementBuilder`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Union

from trellis.errors import BuilderFinalizedError


# ---------------------------------------------------------------------------
# Node variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=True)
class ElementNode:
    """A tagged element with attributes and children."""

    tag: str
    attrs: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[Any, ...] = ()
    key: str | None = None

    def __post_init__(self) -> None:
        # Freeze the containers so the tree cannot be mutated after render.
        if not isinstance(self.attrs, MappingProxyType):
            object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    def get(self, name: str, default: Any = None) -> Any:
        return self.attrs.get(name, default)

    def with_attrs(self, attrs: Mapping[str, Any]) -> ElementNode:
        return ElementNode(self.tag, attrs, self.children, self.key)

    def with_children(self, children: Iterable[Any]) -> ElementNode:
        return ElementNode(self.tag, self.attrs, tuple(children), self.key)


@dataclass(frozen=True, eq=True)
class TextNode:
    """A run of text.  May contain newlines."""

    value: str
    key: str | None = None


@dataclass(frozen=True, eq=True)
class FragmentNode:
    """Children grouped without an element of their own."""

    children: tuple[Any, ...] = ()
    key: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    def with_children(self, children: Iterable[Any]) -> FragmentNode:
        return FragmentNode(tuple(children), self.key)


Node = Union[ElementNode, TextNode, FragmentNode]

NODE_TYPES = (ElementNode, TextNode, FragmentNode)


def is_node(value: Any) -> bool:
    return isinstance(value, NODE_TYPES)


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def _normalize_children(children: Iterable[Any]) -> tuple[Any, ...]:
    """Flatten nested iterables, drop ``None``/booleans, wrap strings."""
    out: list[Any] = []
    for child in children:
        if child is None or isinstance(child, bool):
            continue
        if isinstance(child, str):
            out.append(TextNode(child))
        elif isinstance(child, (list, tuple)):
            out.extend(_normalize_children(child))
        else:
            out.append(child)
    return tuple(out)


def h(
    tag: str,
    attrs: Mapping[str, Any] | None = None,
    *children: Any,
    key: str | None = None,
) -> ElementNode:
    """Create an element.

    Children may be nodes, component descriptors, plain strings (wrapped in
    ``TextNode``), lists of any of these (flattened), or ``None``/``False``
    (skipped), which keeps conditional children terse::

        h("vstack", {"spacing": 1},
          h("text", None, "Title"),
          show_footer and footer(),
        )
    """
    attrs = dict(attrs or {})
    if key is None and "key" in attrs:
        key = attrs.pop("key")
        key = None if key is None else str(key)
    return ElementNode(tag, attrs, _normalize_children(children), key)


def text(value: Any, *, key: str | None = None) -> TextNode:
    return TextNode(str(value), key)


def fragment(*children: Any, key: str | None = None) -> FragmentNode:
    return FragmentNode(_normalize_children(children), key)


class ElementBuilder:
    """Incrementally assemble an :class:`ElementNode`.

    Every method returns the builder so calls can be chained.  Once
    :meth:`build` has been called the builder is finalized and any further
    modification raises :class:`~trellis.errors.BuilderFinalizedError`.
    """

    def __init__(self, tag: str) -> None:
        self._tag = tag
        self._key: str | None = None
        self._attrs: dict[str, Any] = {}
        self._children: list[Any] = []
        self._built: ElementNode | None = None

    def _check_open(self) -> None:
        if self._built is not None:
            raise BuilderFinalizedError(
                f"Element builder for <{self._tag}> was modified after build()"
            )

    def key(self, key: str) -> ElementBuilder:
        self._check_open()
        self._key = key
        return self

    def prop(self, name: str, value: Any) -> ElementBuilder:
        self._check_open()
        self._attrs[name] = value
        return self

    def child(self, node: Any) -> ElementBuilder:
        self._check_open()
        self._children.extend(_normalize_children([node]))
        return self

    def children(self, *nodes: Any) -> ElementBuilder:
        self._check_open()
        self._children.extend(_normalize_children(nodes))
        return self

    def text(self, value: Any) -> ElementBuilder:
        return self.child(TextNode(str(value)))

    @property
    def finalized(self) -> bool:
        return self._built is not None

    def build(self) -> ElementNode:
        """Finalize and return the element.  Repeated calls return the same node."""
        if self._built is None:
            self._built = ElementNode(
                self._tag, self._attrs, tuple(self._children), self._key
            )
        return self._built


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def children_of(node: Any) -> tuple[Any, ...]:
    if isinstance(node, (ElementNode, FragmentNode)):
        return node.children
    return ()


def walk(node: Any, path: tuple[int, ...] = ()) -> Iterator[tuple[tuple[int, ...], Any]]:
    """Yield ``(path, node)`` pairs in document (pre-)order."""
    yield path, node
    for i, child in enumerate(children_of(node)):
        yield from walk(child, path + (i,))


def node_at(root: Any, path: Iterable[int]) -> Any | None:
    """Return the node addressed by *path*, or ``None`` if it does not exist."""
    node = root
    for index in path:
        kids = children_of(node)
        if index < 0 or index >= len(kids):
            return None
        node = kids[index]
    return node


def text_content(node: Any) -> str:
    """Concatenate every text payload below *node* in document order."""
    return "".join(n.value for _, n in walk(node) if isinstance(n, TextNode))


def find_by_key(root: Any, key: str) -> tuple[tuple[int, ...], Any] | None:
    for path, node in walk(root):
        if getattr(node, "key", None) == key:
            return path, node
    return None
