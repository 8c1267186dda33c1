"""Double-buffered cell grid.

``TerminalBuffer`` keeps two equally sized :class:`Grid` objects: *front*
(what the terminal currently shows) and *back* (the frame being built).
All writes go to the back grid and are clipped to its bounds, never raised.
:meth:`TerminalBuffer.commit` diffs back against front cell by cell and
:meth:`TerminalBuffer.swap` makes the back grid the new front.

Wide graphemes occupy a *lead* cell (``width == 2``) followed by a
*continuation* cell (``width == 0``).  Overwriting either half of a wide
grapheme blanks the other half so no orphaned halves reach the terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple

from trellis.style import DEFAULT_STYLE, Style
from trellis.utils import grapheme_width, split_graphemes, strip_ansi


# ---------------------------------------------------------------------------
# Cells and rectangles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Cell:
    """One screen cell: a grapheme cluster, its style and its column width."""

    char: str = " "
    style: Style = DEFAULT_STYLE
    width: int = 1

    @property
    def is_continuation(self) -> bool:
        return self.width == 0


BLANK = Cell()

# Never equal to a real cell; used to force a full redraw.
INVALID = Cell("\x00", DEFAULT_STYLE, -1)


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def intersect(self, other: Rect) -> Rect:
        x0 = max(self.x, other.x)
        y0 = max(self.y, other.y)
        x1 = min(self.right, other.right)
        y1 = min(self.bottom, other.bottom)
        return Rect(x0, y0, max(0, x1 - x0), max(0, y1 - y0))

    def union(self, other: Rect) -> Rect:
        if self.empty:
            return other
        if other.empty:
            return self
        x0 = min(self.x, other.x)
        y0 = min(self.y, other.y)
        return Rect(x0, y0, max(self.right, other.right) - x0, max(self.bottom, other.bottom) - y0)

    def intersects(self, other: Rect) -> bool:
        return not self.intersect(other).empty


@dataclass(frozen=True)
class CellDelta:
    """A cell whose back value differs from the front value at commit time."""

    x: int
    y: int
    old: Cell
    new: Cell


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


class Grid:
    """A ``width`` x ``height`` array of cells."""

    def __init__(self, width: int, height: int, fill: Cell = BLANK) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self.rows: list[list[Cell]] = [[fill] * self.width for _ in range(self.height)]

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Cell | None:
        if not self.in_bounds(x, y):
            return None
        return self.rows[y][x]

    def set(self, x: int, y: int, cell: Cell) -> bool:
        if not self.in_bounds(x, y):
            return False
        self.rows[y][x] = cell
        return True

    def fill(self, cell: Cell = BLANK) -> None:
        for row in self.rows:
            row[:] = [cell] * self.width

    def fill_rect(self, rect: Rect, cell: Cell = BLANK) -> None:
        r = rect.intersect(self.bounds)
        if r.empty:
            return
        for y in range(r.y, r.bottom):
            self.rows[y][r.x:r.right] = [cell] * r.width

    def copy_from(self, other: Grid) -> None:
        """Copy the overlapping region of *other* into this grid."""
        h = min(self.height, other.height)
        w = min(self.width, other.width)
        for y in range(h):
            self.rows[y][:w] = other.rows[y][:w]

    def line(self, y: int) -> str:
        """Plain text of row *y* (continuation cells contribute nothing)."""
        return "".join(c.char for c in self.rows[y] if not c.is_continuation)

    def lines(self) -> list[str]:
        return [self.line(y) for y in range(self.height)]


# ---------------------------------------------------------------------------
# TerminalBuffer
# ---------------------------------------------------------------------------


class TerminalBuffer:
    """Front/back grid pair with cell-level diffing."""

    def __init__(self, width: int, height: int) -> None:
        self.front = Grid(width, height)
        self.back = Grid(width, height)
        self.dirty = False

    @property
    def width(self) -> int:
        return self.back.width

    @property
    def height(self) -> int:
        return self.back.height

    # -- writes (back buffer only) -----------------------------------------

    def set_cell(self, x: int, y: int, cell: Cell, clip: Rect | None = None) -> bool:
        """Place *cell* at ``(x, y)``; return ``False`` if it was clipped."""
        back = self.back
        if not back.in_bounds(x, y):
            return False
        if clip is not None and not clip.contains(x, y):
            return False

        row = back.rows[y]
        current = row[x]
        if current.is_continuation and x > 0 and row[x - 1].width == 2:
            row[x - 1] = Cell(" ", row[x - 1].style)
        if current.width == 2 and x + 1 < back.width and row[x + 1].is_continuation:
            row[x + 1] = Cell(" ", current.style)

        row[x] = cell
        self.dirty = True
        return True

    def write_cell(self, x: int, y: int, char: str, style: Style = DEFAULT_STYLE,
                   clip: Rect | None = None) -> bool:
        """Write a single grapheme; wide graphemes also claim the next cell."""
        w = grapheme_width(char)
        if w <= 0:
            return False
        if w == 2:
            right = self.width if clip is None else min(self.width, clip.right)
            if x + 1 >= right:
                # Not enough room for both halves.
                return self.set_cell(x, y, Cell(" ", style), clip)
            if not self.set_cell(x, y, Cell(char, style, 2), clip):
                return False
            self.set_cell(x + 1, y, Cell("", style, 0), clip)
            return True
        return self.set_cell(x, y, Cell(char, style), clip)

    def write_text(self, x: int, y: int, text: str, style: Style = DEFAULT_STYLE,
                   clip: Rect | None = None) -> int:
        """Write one line of *text* starting at ``(x, y)``.

        Returns the number of columns the text advanced.  Cells outside the
        buffer (or *clip*) are dropped silently.  Escape sequences are
        skipped, the same as when the text is measured for layout.
        """
        col = x
        for g in split_graphemes(strip_ansi(text)):
            if g == "\t":
                for _ in range(3):
                    self.set_cell(col, y, Cell(" ", style), clip)
                    col += 1
                continue
            w = grapheme_width(g)
            if w <= 0:
                continue
            self.write_cell(col, y, g, style, clip)
            col += w
        return col - x

    def clear(self) -> None:
        """Reset every back-buffer cell to a blank with default style."""
        self.back.fill(BLANK)
        self.dirty = True

    def clear_rect(self, rect: Rect) -> None:
        self.fill_rect(rect, BLANK)

    def fill_rect(self, rect: Rect, cell: Cell) -> None:
        r = rect.intersect(self.back.bounds)
        if r.empty:
            return
        row_w = self.back.width
        # Split wide graphemes straddling the rectangle's edges first.
        for y in range(r.y, r.bottom):
            row = self.back.rows[y]
            if r.x > 0 and row[r.x].is_continuation:
                row[r.x - 1] = Cell(" ", row[r.x - 1].style)
            if r.right < row_w and row[r.right].is_continuation:
                row[r.right] = Cell(" ", row[r.right].style)
        self.back.fill_rect(r, cell)
        self.dirty = True

    def widen_to_graphemes(self, rect: Rect) -> Rect:
        """Grow *rect* sideways until no wide grapheme in the back grid straddles
        its left or right edge on any row.  The result is clipped to the grid.
        """
        r = rect.intersect(self.back.bounds)
        if r.empty:
            return r
        rows = self.back.rows[r.y:r.bottom]
        x0, x1 = r.x, r.right
        changed = True
        while changed:
            changed = False
            if x0 > 0 and any(row[x0].is_continuation for row in rows):
                x0 -= 1
                changed = True
            if x1 < self.back.width and any(row[x1].is_continuation for row in rows):
                x1 += 1
                changed = True
        return Rect(x0, r.y, x1 - x0, r.height)

    # -- diff / swap --------------------------------------------------------

    def commit(self) -> list[CellDelta]:
        """Return every cell where back differs from front, row-major order."""
        deltas: list[CellDelta] = []
        front_rows = self.front.rows
        for y, back_row in enumerate(self.back.rows):
            front_row = front_rows[y]
            if back_row == front_row:
                continue
            for x, new in enumerate(back_row):
                old = front_row[x]
                if old != new:
                    deltas.append(CellDelta(x, y, old, new))
        return deltas

    def swap(self) -> None:
        """Make the back grid the front; the new back starts as a copy of it."""
        self.front, self.back = self.back, self.front
        self.back.copy_from(self.front)
        self.dirty = False

    def swap_buffers(self) -> list[CellDelta]:
        """:meth:`commit` followed by :meth:`swap`."""
        deltas = self.commit()
        self.swap()
        return deltas

    def resize(self, width: int, height: int) -> None:
        """Resize both grids.  The front grid is invalidated so every cell redraws."""
        old_back = self.back
        self.front = Grid(width, height, INVALID)
        self.back = Grid(width, height)
        self.back.copy_from(old_back)
        self.dirty = True

    def invalidate(self) -> None:
        """Force the next commit to report every cell."""
        self.front.fill(INVALID)
        self.dirty = True

    def iter_back(self) -> Iterator[tuple[int, int, Cell]]:
        for y, row in enumerate(self.back.rows):
            for x, cell in enumerate(row):
                yield x, y, cell
