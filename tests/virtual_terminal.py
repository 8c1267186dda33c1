"""Virtual terminal for testing -- implements the Terminal protocol in-memory.

This module provides a ``VirtualTerminal`` class that satisfies the
``trellis.terminal.Terminal`` protocol without performing any real I/O.
All output is captured for assertions, and a small ANSI interpreter keeps a
character grid so tests can check what a real terminal would show.
"""

from __future__ import annotations

import re
from typing import Callable

from trellis.utils import grapheme_width, split_graphemes

_CSI_RE = re.compile(r"\x1b\[([?0-9;]*)([A-Za-z])")
_OSC_RE = re.compile(r"\x1b\][^\x07]*\x07")


class VirtualTerminal:
    """In-memory terminal that records all writes for test inspection.

    Implements the ``Terminal`` protocol from ``trellis.terminal``.

    Parameters
    ----------
    rows:
        Number of terminal rows (height).
    columns:
        Number of terminal columns (width).
    """

    def __init__(self, rows: int = 24, columns: int = 80) -> None:
        self._rows = rows
        self._columns = columns
        self._buffer: list[str] = []
        self._started = False
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._cursor_visible = True
        self._title: str = ""
        self._screen = [[" "] * columns for _ in range(rows)]
        self._cx = 0
        self._cy = 0

    # -- Terminal protocol: properties --------------------------------------

    @property
    def rows(self) -> int:
        return self._rows

    @rows.setter
    def rows(self, value: int) -> None:
        self._rows = value

    @property
    def columns(self) -> int:
        return self._columns

    @columns.setter
    def columns(self, value: int) -> None:
        self._columns = value

    @property
    def started(self) -> bool:
        return self._started

    @property
    def cursor_visible(self) -> bool:
        return self._cursor_visible

    # -- Terminal protocol: lifecycle ---------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        self._input_handler = on_input
        self._resize_handler = on_resize
        self._started = True

    def stop(self) -> None:
        self._started = False
        self._input_handler = None
        self._resize_handler = None

    # -- Terminal protocol: output ------------------------------------------

    def write(self, data: str) -> None:
        """Append *data* to the internal buffer and apply it to the grid."""
        self._buffer.append(data)
        self._interpret(data)

    def move_to(self, x: int, y: int) -> None:
        self.write(f"\x1b[{y + 1};{x + 1}H")

    def hide_cursor(self) -> None:
        self._cursor_visible = False
        self.write("\x1b[?25l")

    def show_cursor(self) -> None:
        self._cursor_visible = True
        self.write("\x1b[?25h")

    def clear_screen(self) -> None:
        self.write("\x1b[2J\x1b[H")

    def set_title(self, title: str) -> None:
        self._title = title
        self.write(f"\x1b]0;{title}\x07")

    # -- ANSI interpretation ------------------------------------------------

    def _interpret(self, data: str) -> None:
        data = _OSC_RE.sub("", data)
        pos = 0
        while pos < len(data):
            match = _CSI_RE.match(data, pos)
            if match is not None:
                self._csi(match.group(1), match.group(2))
                pos = match.end()
                continue
            next_esc = data.find("\x1b", pos + 1)
            chunk = data[pos:] if next_esc < 0 else data[pos:next_esc]
            self._print(chunk)
            pos += len(chunk)

    def _csi(self, params: str, final: str) -> None:
        if final == "H":
            parts = [p for p in params.split(";") if p]
            row = int(parts[0]) if parts else 1
            col = int(parts[1]) if len(parts) > 1 else 1
            self._cy, self._cx = row - 1, col - 1
        elif final == "J" and params == "2":
            self._screen = [[" "] * self._columns for _ in range(self._rows)]
        # SGR and private modes do not affect the character grid.

    def _print(self, chunk: str) -> None:
        for g in split_graphemes(chunk):
            if g == "\x1b":
                continue
            width = grapheme_width(g)
            if 0 <= self._cy < len(self._screen) and 0 <= self._cx < self._columns:
                self._screen[self._cy][self._cx] = g
                if width == 2 and self._cx + 1 < self._columns:
                    self._screen[self._cy][self._cx + 1] = ""
            self._cx += max(1, width)

    # -- Test helpers -------------------------------------------------------

    @property
    def output(self) -> str:
        """Return everything written to the terminal as a single string."""
        return "".join(self._buffer)

    @property
    def write_count(self) -> int:
        """Return the number of individual ``write`` calls made."""
        return len(self._buffer)

    def clear_buffer(self) -> None:
        """Discard all recorded output (the grid is kept)."""
        self._buffer.clear()

    def screen_lines(self) -> list[str]:
        """Rows of the interpreted screen, trailing spaces removed."""
        return ["".join(row).rstrip() for row in self._screen]

    def simulate_input(self, data: str) -> None:
        """Feed *data* into the registered input handler.

        Raises ``RuntimeError`` if no input handler has been registered
        (i.e. ``start`` was not called).
        """
        if self._input_handler is None:
            raise RuntimeError(
                "No input handler registered -- call start() first"
            )
        self._input_handler(data)

    def simulate_resize(self, rows: int | None = None, columns: int | None = None) -> None:
        """Change terminal dimensions and fire the resize callback."""
        if rows is not None:
            self._rows = rows
        if columns is not None:
            self._columns = columns
        self._screen = [[" "] * self._columns for _ in range(self._rows)]
        if self._resize_handler is not None:
            self._resize_handler()
