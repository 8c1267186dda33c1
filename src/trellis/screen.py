"""Frame lifecycle and ANSI emission on top of :class:`TerminalBuffer`.

Every frame goes through the same phases::

    IDLE --begin_frame()--> WRITING --commit()--> COMMITTED --present()--> IDLE

``begin_frame`` clears the back buffer (unless the caller asks to keep it
for a partial repaint), ``commit`` diffs back against front, and
``present`` turns those deltas into one terminal write and swaps the
buffers.  Calling the phases out of order raises
:class:`~trellis.errors.FrameStateError`.
"""

from __future__ import annotations

import enum
import logging
from typing import Iterable

from trellis.buffer import Cell, CellDelta, Rect, TerminalBuffer
from trellis.errors import FrameStateError
from trellis.style import DEFAULT_STYLE, SGR_RESET, TRUECOLOR, Style, sgr
from trellis.terminal import Terminal, move_to_sequence

logger = logging.getLogger(__name__)

_CLEAR_SCREEN = "\x1b[2J"


class FramePhase(enum.Enum):
    IDLE = "idle"
    WRITING = "writing"
    COMMITTED = "committed"


# ---------------------------------------------------------------------------
# Delta encoding
# ---------------------------------------------------------------------------


def render_deltas(deltas: Iterable[CellDelta], color_mode: str = TRUECOLOR) -> str:
    """Encode changed cells as ANSI output.

    Contiguous changes on a row share one cursor move, and a style sequence
    is only emitted when the style differs from the previous cell written.
    Continuation halves of wide graphemes are skipped; the terminal fills
    them when it prints the lead cell.
    """
    out: list[str] = []
    cursor: tuple[int, int] | None = None
    current: Style | None = None

    for delta in deltas:
        cell = delta.new
        if cell.is_continuation:
            continue
        if cursor != (delta.x, delta.y):
            out.append(move_to_sequence(delta.x, delta.y))
        if cell.style != current:
            out.append(sgr(cell.style, color_mode))
            current = cell.style
        out.append(cell.char)
        cursor = (delta.x + max(1, cell.width), delta.y)

    if current is not None and current != DEFAULT_STYLE:
        out.append(SGR_RESET)
    return "".join(out)


def count_cursor_moves(output: str) -> int:
    """Number of absolute cursor moves in *output* (diagnostics and tests)."""
    count = 0
    i = 0
    while True:
        i = output.find("\x1b[", i)
        if i < 0:
            return count
        j = i + 2
        while j < len(output) and (output[j].isdigit() or output[j] == ";"):
            j += 1
        if j < len(output) and output[j] == "H":
            count += 1
        i = j


# ---------------------------------------------------------------------------
# Screen
# ---------------------------------------------------------------------------


class Screen:
    """Owns the double buffer and is the only writer to the terminal."""

    def __init__(
        self,
        terminal: Terminal,
        width: int | None = None,
        height: int | None = None,
        color_mode: str = TRUECOLOR,
    ) -> None:
        self.terminal = terminal
        self.color_mode = color_mode
        self.buffer = TerminalBuffer(
            terminal.columns if width is None else width,
            terminal.rows if height is None else height,
        )
        self.phase = FramePhase.IDLE
        self.frames = 0
        self.full_redraws = 0
        self.last_output = ""
        self._pending: list[CellDelta] | None = None
        self._clear_pending = False

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    # -- lifecycle ----------------------------------------------------------

    def begin_frame(self, clear: bool = True) -> None:
        """Start a frame.  With *clear* every back cell is reset to blank."""
        if self.phase is not FramePhase.IDLE:
            raise FrameStateError(f"begin_frame() called while {self.phase.value}")
        if clear:
            self.buffer.clear()
        self.phase = FramePhase.WRITING

    def commit(self) -> list[CellDelta]:
        """Diff the back buffer against the front buffer."""
        if self.phase is not FramePhase.WRITING:
            raise FrameStateError(f"commit() called while {self.phase.value}")
        self._pending = self.buffer.commit()
        self.phase = FramePhase.COMMITTED
        return self._pending

    def present(self, deltas: list[CellDelta] | None = None) -> str:
        """Write the committed deltas to the terminal and swap buffers."""
        if self.phase is not FramePhase.COMMITTED or self._pending is None:
            raise FrameStateError("present() called without a preceding commit()")
        if deltas is None:
            deltas = self._pending

        output = render_deltas(deltas, self.color_mode)
        if self._clear_pending:
            output = _CLEAR_SCREEN + output
            self._clear_pending = False
            self.full_redraws += 1
        if output:
            self.terminal.write(output)

        self.buffer.swap()
        self._pending = None
        self.phase = FramePhase.IDLE
        self.frames += 1
        self.last_output = output
        logger.debug("frame %d: %d cells, %d bytes", self.frames, len(deltas), len(output))
        return output

    def abort_frame(self) -> None:
        """Discard an unfinished frame; the back buffer reverts to the front."""
        self.buffer.back.copy_from(self.buffer.front)
        self._pending = None
        self.phase = FramePhase.IDLE

    def resize(self, width: int, height: int) -> None:
        """Resize the buffers; the next frame clears the screen and redraws everything."""
        if self.phase is not FramePhase.IDLE:
            raise FrameStateError("resize() called in the middle of a frame")
        self.buffer.resize(width, height)
        self._clear_pending = True

    def invalidate(self) -> None:
        """Redraw every cell on the next frame."""
        self.buffer.invalidate()
        self._clear_pending = True

    def request_clear(self) -> None:
        """Clear the physical screen before the next frame's output.

        The front buffer already starts blank, so only the terminal needs it.
        """
        self._clear_pending = True

    # -- writes -------------------------------------------------------------

    def _require_writing(self) -> None:
        if self.phase is not FramePhase.WRITING:
            raise FrameStateError("writes are only allowed between begin_frame() and commit()")

    def write_cell(self, x: int, y: int, char: str, style: Style = DEFAULT_STYLE) -> bool:
        self._require_writing()
        return self.buffer.write_cell(x, y, char, style)

    def write_text(self, x: int, y: int, text: str, style: Style = DEFAULT_STYLE) -> int:
        self._require_writing()
        return self.buffer.write_text(x, y, text, style)

    def clear_rect(self, rect: Rect) -> None:
        self._require_writing()
        self.buffer.clear_rect(rect)

    def front_cell(self, x: int, y: int) -> Cell | None:
        return self.buffer.front.get(x, y)

    def lines(self) -> list[str]:
        """Text currently on screen (front buffer)."""
        return self.buffer.front.lines()
