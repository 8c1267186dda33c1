"""Constraint-based layout.

``calculate_layout(node, constraints)`` returns a fresh :class:`LayoutBox`
tree mirroring the node tree.  Constraints flow down (each child receives a
loosened sub-constraint with the space already consumed along the stacking
axis removed) and sizes flow back up.  :func:`resolve_absolute` then walks
the finished tree top-down and fills in absolute screen coordinates.

Element attributes understood here:

``direction``
    ``"vertical"`` (default), ``"horizontal"`` or ``"overlay"``.  The tags
    ``hstack`` and ``zstack`` imply horizontal and overlay.
``spacing``
    Cells between consecutive children along the stacking axis.
``width`` / ``height``
    A :class:`Length`: an ``int`` (cells), ``"50%"`` or ``"auto"``.
``min_width`` / ``max_width`` / ``min_height`` / ``max_height``
    Extra integer bounds intersected with the incoming constraints.
``padding`` / ``margin``
    A :class:`Spacing`: one value, ``(vertical, horizontal)`` or
    ``(top, right, bottom, left)``.
``grow``
    Weight for sharing leftover space along the parent's stacking axis.
``align``
    Cross-axis placement: ``"start"`` (default), ``"center"`` or ``"end"``.

All sizes are whole cells.  Nothing here ever produces a negative size; a
size requested beyond the maximum is clamped to the maximum and overflow is
left to the painter's clipping.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterator, NamedTuple

from trellis.buffer import Rect
from trellis.nodes import ElementNode, FragmentNode, TextNode
from trellis.utils import text_size

VERTICAL = "vertical"
HORIZONTAL = "horizontal"
OVERLAY = "overlay"

_TAG_DIRECTIONS = {"hstack": HORIZONTAL, "row": HORIZONTAL, "zstack": OVERLAY}


# ---------------------------------------------------------------------------
# Lengths and spacing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Length:
    """A size in cells (``px``), a percentage of the parent (``%``) or ``auto``."""

    value: float = 0
    unit: str = "auto"

    @classmethod
    def px(cls, value: float) -> Length:
        return cls(value, "px")

    @classmethod
    def percent(cls, value: float) -> Length:
        return cls(value, "%")

    @classmethod
    def auto(cls) -> Length:
        return cls(0, "auto")

    @classmethod
    def parse(cls, value: Any) -> Length:
        if isinstance(value, Length):
            return value
        if value is None:
            return cls.auto()
        if isinstance(value, (int, float)):
            return cls.px(value)
        text = str(value).strip().lower()
        if text in ("", "auto"):
            return cls.auto()
        if text.endswith("%"):
            return cls.percent(float(text[:-1]))
        if text.endswith("px"):
            text = text[:-2]
        try:
            return cls.px(float(text))
        except ValueError:
            raise ValueError(f"Invalid length value: {value!r}") from None

    @property
    def is_auto(self) -> bool:
        return self.unit == "auto"

    def resolve(self, base: float | None) -> int | None:
        """Cells for this length, or ``None`` when it cannot be resolved.

        Percentages of an unknown or unbounded base resolve as ``auto``.
        """
        if self.unit == "px":
            return max(0, int(self.value))
        if self.unit == "%":
            if base is None or math.isinf(base):
                return None
            return max(0, math.floor(base * self.value / 100))
        return None

    def __str__(self) -> str:
        if self.unit == "auto":
            return "auto"
        return f"{self.value:g}{self.unit}"


class Insets(NamedTuple):
    """Resolved four-sided spacing in cells."""

    top: int = 0
    right: int = 0
    bottom: int = 0
    left: int = 0

    @property
    def horizontal(self) -> int:
        return self.left + self.right

    @property
    def vertical(self) -> int:
        return self.top + self.bottom


ZERO_INSETS = Insets()


@dataclass(frozen=True)
class Spacing:
    top: Length = field(default_factory=Length.auto)
    right: Length = field(default_factory=Length.auto)
    bottom: Length = field(default_factory=Length.auto)
    left: Length = field(default_factory=Length.auto)

    @classmethod
    def parse(cls, value: Any) -> Spacing:
        if isinstance(value, Spacing):
            return value
        if value is None:
            return cls()
        if isinstance(value, (list, tuple)):
            parts = [Length.parse(v) for v in value]
            if len(parts) == 1:
                return cls(parts[0], parts[0], parts[0], parts[0])
            if len(parts) == 2:
                return cls(parts[0], parts[1], parts[0], parts[1])
            if len(parts) == 4:
                return cls(*parts)
            raise ValueError(f"Spacing needs 1, 2 or 4 values, got {len(parts)}")
        one = Length.parse(value)
        return cls(one, one, one, one)

    def resolve(self, base_width: float | None, base_height: float | None) -> Insets:
        return Insets(
            self.top.resolve(base_height) or 0,
            self.right.resolve(base_width) or 0,
            self.bottom.resolve(base_height) or 0,
            self.left.resolve(base_width) or 0,
        )


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LayoutConstraints:
    """Min/max bounds for a box.

    Normalised on construction: negative minimums become zero and a maximum
    below its minimum is raised to the minimum.
    """

    min_width: float = 0
    max_width: float = math.inf
    min_height: float = 0
    max_height: float = math.inf

    def __post_init__(self) -> None:
        min_w = max(0, self.min_width)
        min_h = max(0, self.min_height)
        object.__setattr__(self, "min_width", min_w)
        object.__setattr__(self, "max_width", max(min_w, self.max_width))
        object.__setattr__(self, "min_height", min_h)
        object.__setattr__(self, "max_height", max(min_h, self.max_height))

    @classmethod
    def tight(cls, width: float, height: float) -> LayoutConstraints:
        return cls(width, width, height, height)

    @classmethod
    def loose(cls, max_width: float, max_height: float) -> LayoutConstraints:
        return cls(0, max_width, 0, max_height)

    @classmethod
    def unconstrained(cls) -> LayoutConstraints:
        return cls(0, math.inf, 0, math.inf)

    @property
    def is_tight(self) -> bool:
        return self.min_width == self.max_width and self.min_height == self.max_height

    @property
    def is_bounded(self) -> bool:
        return not (math.isinf(self.max_width) or math.isinf(self.max_height))

    def constrain_width(self, width: float) -> int:
        return _to_cells(max(self.min_width, min(self.max_width, width)))

    def constrain_height(self, height: float) -> int:
        return _to_cells(max(self.min_height, min(self.max_height, height)))

    def deflate(self, insets: Insets) -> LayoutConstraints:
        """Remove *insets* from every bound, never going below zero."""
        h = insets.horizontal
        v = insets.vertical
        return LayoutConstraints(
            max(0, self.min_width - h),
            max(0, self.max_width - h),
            max(0, self.min_height - v),
            max(0, self.max_height - v),
        )

    def loosen(self) -> LayoutConstraints:
        return LayoutConstraints(0, self.max_width, 0, self.max_height)

    def intersect(
        self,
        min_width: float | None = None,
        max_width: float | None = None,
        min_height: float | None = None,
        max_height: float | None = None,
    ) -> LayoutConstraints:
        """Narrow the bounds, staying inside the current ones."""
        lo_w, hi_w = self.min_width, self.max_width
        lo_h, hi_h = self.min_height, self.max_height
        if min_width is not None:
            lo_w = min(max(lo_w, min_width), hi_w)
        if max_width is not None:
            hi_w = max(min(hi_w, max_width), lo_w)
        if min_height is not None:
            lo_h = min(max(lo_h, min_height), hi_h)
        if max_height is not None:
            hi_h = max(min(hi_h, max_height), lo_h)
        return LayoutConstraints(lo_w, hi_w, lo_h, hi_h)


def _to_cells(value: float) -> int:
    if math.isinf(value):
        raise ValueError("Cannot size a box to an unbounded constraint")
    return int(value)


# ---------------------------------------------------------------------------
# Boxes
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class LayoutBox:
    """Computed geometry for one node.

    ``x``/``y`` are relative to the parent box's origin; ``abs_x``/``abs_y``
    are only valid after :func:`resolve_absolute` has run on this tree.
    ``width``/``height`` include padding but not margin.
    """

    node: Any
    path: tuple[int, ...] = ()
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    padding: Insets = ZERO_INSETS
    margin: Insets = ZERO_INSETS
    abs_x: int = 0
    abs_y: int = 0
    children: list[LayoutBox] = field(default_factory=list)

    @property
    def outer_width(self) -> int:
        return self.width + self.margin.horizontal

    @property
    def outer_height(self) -> int:
        return self.height + self.margin.vertical

    @property
    def rect(self) -> Rect:
        return Rect(self.abs_x, self.abs_y, self.width, self.height)

    @property
    def content_rect(self) -> Rect:
        p = self.padding
        return Rect(
            self.abs_x + p.left,
            self.abs_y + p.top,
            max(0, self.width - p.horizontal),
            max(0, self.height - p.vertical),
        )

    def walk(self) -> Iterator[LayoutBox]:
        yield self
        for child in self.children:
            yield from child.walk()

    def find(self, path: tuple[int, ...]) -> LayoutBox | None:
        box = self
        for index in path:
            if index >= len(box.children):
                return None
            box = box.children[index]
        return box


# ---------------------------------------------------------------------------
# calculate_layout
# ---------------------------------------------------------------------------


def calculate_layout(
    node: Any,
    constraints: LayoutConstraints,
    parent_width: float | None = None,
    parent_height: float | None = None,
) -> LayoutBox:
    """Lay out *node* within *constraints* and return its box tree.

    Percentages resolve against *parent_width* / *parent_height*, defaulting
    to the constraint maxima.  The returned box is positioned at its margin
    offset; call :func:`resolve_absolute` before reading absolute positions.
    """
    if parent_width is None:
        parent_width = constraints.max_width
    if parent_height is None:
        parent_height = constraints.max_height
    box = _layout_outer(node, constraints, parent_width, parent_height, (), VERTICAL)
    box.x = box.margin.left
    box.y = box.margin.top
    return box


def resolve_absolute(box: LayoutBox, origin_x: int = 0, origin_y: int = 0) -> LayoutBox:
    """Assign ``abs_x``/``abs_y`` for *box* and every descendant, top-down."""
    box.abs_x = origin_x + box.x
    box.abs_y = origin_y + box.y
    for child in box.children:
        resolve_absolute(child, box.abs_x, box.abs_y)
    return box


def _layout_outer(
    node: Any,
    constraints: LayoutConstraints,
    parent_width: float | None,
    parent_height: float | None,
    path: tuple[int, ...],
    inherited_direction: str,
) -> LayoutBox:
    """Resolve *node*'s margin, then lay out its border box in what remains."""
    margin = ZERO_INSETS
    if isinstance(node, ElementNode) and node.get("margin") is not None:
        margin = Spacing.parse(node.get("margin")).resolve(parent_width, parent_height)
    inner = constraints.deflate(margin)

    if isinstance(node, TextNode):
        w, h = text_size(node.value)
        box = LayoutBox(node, path, width=inner.constrain_width(w), height=inner.constrain_height(h))
    elif isinstance(node, ElementNode):
        box = _layout_element(node, inner, parent_width, parent_height, path)
    elif isinstance(node, FragmentNode):
        box = LayoutBox(node, path)
        _layout_children(
            box, node.children, inner, inherited_direction, 0, ZERO_INSETS,
            _finite_opt(parent_width), _finite_opt(parent_height),
        )
    else:
        box = LayoutBox(node, path)

    box.margin = margin
    return box


def _layout_element(
    node: ElementNode,
    constraints: LayoutConstraints,
    parent_width: float | None,
    parent_height: float | None,
    path: tuple[int, ...],
) -> LayoutBox:
    c = constraints.intersect(
        _opt_int(node.get("min_width")),
        _opt_int(node.get("max_width")),
        _opt_int(node.get("min_height")),
        _opt_int(node.get("max_height")),
    )

    width = Length.parse(node.get("width")).resolve(parent_width)
    height = Length.parse(node.get("height")).resolve(parent_height)
    if width is not None:
        w = c.constrain_width(width)
        c = LayoutConstraints(w, w, c.min_height, c.max_height)
    if height is not None:
        hgt = c.constrain_height(height)
        c = LayoutConstraints(c.min_width, c.max_width, hgt, hgt)

    padding = ZERO_INSETS
    if node.get("padding") is not None:
        padding = Spacing.parse(node.get("padding")).resolve(parent_width, parent_height)

    content = c.deflate(padding)
    direction = node.get("direction") or _TAG_DIRECTIONS.get(node.tag, VERTICAL)
    spacing = max(0, int(node.get("spacing") or 0))

    box = LayoutBox(node, path, padding=padding)
    content_w, content_h = _layout_children(
        box,
        node.children,
        content,
        direction,
        spacing,
        padding,
        _finite(content.max_width),
        _finite(content.max_height),
    )
    box.width = c.constrain_width(content_w + padding.horizontal)
    box.height = c.constrain_height(content_h + padding.vertical)
    _align_children(box, direction)
    return box


def _layout_children(
    box: LayoutBox,
    children: tuple[Any, ...],
    content: LayoutConstraints,
    direction: str,
    spacing: int,
    padding: Insets,
    base_width: float | None,
    base_height: float | None,
) -> tuple[int, int]:
    """Size and place *children* inside *box*; return the content size."""
    vertical = direction == VERTICAL
    overlay = direction == OVERLAY
    child_dir = direction if not overlay else VERTICAL
    main_max = content.max_height if vertical else content.max_width

    boxes: list[LayoutBox] = []
    used = 0
    for i, child in enumerate(children):
        gap = spacing if i > 0 and not overlay else 0
        if overlay:
            sub = content.loosen()
        elif vertical:
            sub = LayoutConstraints(0, content.max_width, 0, max(0, main_max - used - gap))
        else:
            sub = LayoutConstraints(0, max(0, main_max - used - gap), 0, content.max_height)
        child_box = _layout_outer(child, sub, base_width, base_height, box.path + (i,), child_dir)
        boxes.append(child_box)
        if not overlay:
            used += gap + (child_box.outer_height if vertical else child_box.outer_width)

    if not overlay and not math.isinf(main_max):
        used = _grow_children(boxes, children, content, vertical, main_max, used, base_width, base_height)

    cross = 0
    offset = 0
    for i, child_box in enumerate(boxes):
        if not overlay and i > 0:
            offset += spacing
        if vertical or overlay:
            child_box.x = padding.left + child_box.margin.left
            child_box.y = padding.top + child_box.margin.top + (0 if overlay else offset)
        else:
            child_box.x = padding.left + child_box.margin.left + offset
            child_box.y = padding.top + child_box.margin.top
        if overlay:
            cross = max(cross, child_box.outer_width)
            offset = max(offset, child_box.outer_height)
        elif vertical:
            offset += child_box.outer_height
            cross = max(cross, child_box.outer_width)
        else:
            offset += child_box.outer_width
            cross = max(cross, child_box.outer_height)

    box.children = boxes
    if vertical or overlay:
        content_w, content_h = cross, offset
    else:
        content_w, content_h = offset, cross
    if isinstance(box.node, FragmentNode):
        box.width = content.constrain_width(content_w)
        box.height = content.constrain_height(content_h)
    return content_w, content_h


def _grow_children(
    boxes: list[LayoutBox],
    children: tuple[Any, ...],
    content: LayoutConstraints,
    vertical: bool,
    main_max: float,
    used: int,
    base_width: float | None,
    base_height: float | None,
) -> int:
    """Share leftover main-axis space between children with a ``grow`` weight."""
    weights = [
        max(0, int(c.get("grow") or 0)) if isinstance(c, ElementNode) else 0
        for c in children
    ]
    total = sum(weights)
    free = int(main_max) - used
    if total <= 0 or free <= 0:
        return used

    shares = [free * w // total for w in weights]
    remainder = free - sum(shares)
    for i, w in enumerate(weights):
        if w and remainder > 0:
            shares[i] += 1
            remainder -= 1

    for i, share in enumerate(shares):
        if not share:
            continue
        old = boxes[i]
        if vertical:
            size = old.height + share
            sub = LayoutConstraints(0, content.max_width, size + old.margin.vertical, size + old.margin.vertical)
        else:
            size = old.width + share
            sub = LayoutConstraints(size + old.margin.horizontal, size + old.margin.horizontal, 0, content.max_height)
        boxes[i] = _layout_outer(children[i], sub, base_width, base_height, old.path, VERTICAL if vertical else HORIZONTAL)
    return used + sum(shares)


def _align_children(box: LayoutBox, direction: str) -> None:
    """Apply each child's ``align`` along the cross axis once the parent size is known."""
    content = box.content_rect
    for child in box.children:
        node = child.node
        align = node.get("align") if isinstance(node, ElementNode) else None
        if align not in ("center", "end"):
            continue
        if direction == HORIZONTAL:
            free = content.height - child.outer_height
            shift = free // 2 if align == "center" else free
            child.y += max(0, shift)
        else:
            free = content.width - child.outer_width
            shift = free // 2 if align == "center" else free
            child.x += max(0, shift)


def _opt_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _finite(value: float) -> float | None:
    return None if math.isinf(value) else value


def _finite_opt(value: float | None) -> float | None:
    return None if value is None else _finite(value)
