"""Flatten a laid-out node tree into cell writes.

The painter walks a :class:`~trellis.layout.LayoutBox` tree once to build a
display list of fill and text operations, each tagged with an absolute
z-index and a clip rectangle, then executes the list sorted by z-index
(stable in tree order) against the back buffer of a
:class:`~trellis.buffer.TerminalBuffer`.

Element attributes used here:

``style``
    A :class:`~trellis.style.Style`, a mapping of :meth:`Style.of` keyword
    arguments, or the name of a style in the configured theme.  Styles
    cascade: children inherit the merged style of their ancestors, and text
    paints with the nearest element's merged style.
``focus_style``
    Merged on top of ``style`` while the element holds focus.
``z_index``
    Relative paint order; added to the parent's absolute z-index.
``overflow``
    ``"visible"`` lets descendants paint outside the element's box.
``focusable`` / ``on_key`` / ``on_click``
    Collected into :attr:`PaintResult.focusables` and
    :attr:`PaintResult.hit_regions` for the event router.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from trellis.buffer import Cell, Rect, TerminalBuffer
from trellis.layout import LayoutBox
from trellis.nodes import ElementNode, TextNode
from trellis.style import DEFAULT_STYLE, Style, coerce_style
from trellis.zindex import ZIndexContext


@dataclass(frozen=True)
class HitRegion:
    """A clickable or focusable area, in absolute screen coordinates."""

    rect: Rect
    node: ElementNode
    path: tuple[int, ...]
    z: int
    order: int

    @property
    def key(self) -> str | None:
        return self.node.key


@dataclass(frozen=True)
class FocusTarget:
    key: str
    path: tuple[int, ...]
    node: ElementNode
    rect: Rect


@dataclass
class PaintResult:
    hit_regions: list[HitRegion] = field(default_factory=list)
    focusables: list[FocusTarget] = field(default_factory=list)
    operations: int = 0

    def hit_test(self, x: int, y: int) -> HitRegion | None:
        """Topmost region containing ``(x, y)``: highest z, then latest painted."""
        best: HitRegion | None = None
        for region in self.hit_regions:
            if not region.rect.contains(x, y):
                continue
            if best is None or (region.z, region.order) >= (best.z, best.order):
                best = region
        return best


@dataclass(frozen=True)
class _Op:
    z: int
    order: int
    clip: Rect
    style: Style
    rect: Rect
    text: str | None = None


class Painter:
    """Paints layout trees into a :class:`TerminalBuffer`."""

    def __init__(
        self,
        buffer: TerminalBuffer,
        default_style: Style = DEFAULT_STYLE,
        theme: Mapping[str, Style] | None = None,
    ) -> None:
        self.buffer = buffer
        self.default_style = default_style
        self.theme = theme or {}

    def paint(
        self,
        root: LayoutBox,
        clip: Rect | None = None,
        focused_key: str | None = None,
    ) -> PaintResult:
        """Paint *root* into the back buffer, restricted to *clip* if given."""
        screen = Rect(0, 0, self.buffer.width, self.buffer.height)
        clip = screen if clip is None else clip.intersect(screen)
        result = PaintResult()
        ops: list[_Op] = []
        self._collect(root, self.default_style, clip, ZIndexContext(), focused_key, ops, result)

        ops.sort(key=lambda op: (op.z, op.order))
        for op in ops:
            self._execute(op)
        result.operations = len(ops)
        return result

    # -- display list -------------------------------------------------------

    def _collect(
        self,
        box: LayoutBox,
        inherited: Style,
        clip: Rect,
        zctx: ZIndexContext,
        focused_key: str | None,
        ops: list[_Op],
        result: PaintResult,
    ) -> None:
        node = box.node

        if isinstance(node, TextNode):
            own = clip.intersect(box.rect)
            if not own.empty and node.value:
                ops.append(_Op(zctx.current, len(ops), own, inherited, box.rect, node.value))
            return

        if not isinstance(node, ElementNode):
            # Fragments and anything else only group their children.
            for child in box.children:
                self._collect(child, inherited, clip, zctx, focused_key, ops, result)
            return

        style = inherited.merge(self._resolve_style(node.get("style")))
        focused = focused_key is not None and node.key == focused_key
        if focused:
            style = style.merge(self._resolve_style(node.get("focus_style")))

        with zctx.layer(int(node.get("z_index") or 0)) as z:
            rect = box.rect
            if node.get("focusable") and node.key is not None:
                result.focusables.append(FocusTarget(node.key, box.path, node, rect))
            if node.get("on_click") is not None or node.get("focusable"):
                result.hit_regions.append(
                    HitRegion(rect, node, box.path, z, len(result.hit_regions))
                )

            own_clip = clip.intersect(rect)
            if style.bg is not None and not own_clip.empty:
                ops.append(_Op(z, len(ops), own_clip, style, rect))

            child_clip = clip if node.get("overflow") == "visible" else own_clip
            for child in box.children:
                self._collect(child, style, child_clip, zctx, focused_key, ops, result)

    def _resolve_style(self, value: Any) -> Style | None:
        if isinstance(value, str):
            return self.theme.get(value)
        return coerce_style(value)

    # -- execution ----------------------------------------------------------

    def _execute(self, op: _Op) -> None:
        buf = self.buffer
        if op.text is None:
            buf.fill_rect(op.clip, Cell(" ", op.style))
            return
        for i, line in enumerate(op.text.split("\n")):
            y = op.rect.y + i
            if y < op.clip.y:
                continue
            if y >= op.clip.bottom:
                break
            buf.write_text(op.rect.x, y, line, op.style, op.clip)


def paint_to_lines(root: LayoutBox, width: int, height: int) -> list[str]:
    """Paint *root* into a fresh buffer and return its text rows."""
    buf = TerminalBuffer(width, height)
    Painter(buf).paint(root)
    return buf.back.lines()
