"""Terminal transport.

Provides a ``Terminal`` protocol and a concrete ``ProcessTerminal`` that
puts the controlling tty in raw mode, reads stdin on a background thread and
reports resizes via SIGWINCH.  The renderer is the only writer; input
callbacks fire on the reader thread and must only hand data off (the
renderer pushes it onto a thread-safe queue).
"""

from __future__ import annotations

import codecs
import logging
import os
import select
import signal
import sys
import termios
import threading
import tty
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
_BRACKETED_PASTE_DISABLE = "\x1b[?2004l"
_MOUSE_ENABLE = "\x1b[?1000h\x1b[?1006h"
_MOUSE_DISABLE = "\x1b[?1006l\x1b[?1000l"
_ALT_SCREEN_ENABLE = "\x1b[?1049h"
_ALT_SCREEN_DISABLE = "\x1b[?1049l"

_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_CLEAR_SCREEN = "\x1b[2J\x1b[H"
_MOVE_TO_FMT = "\x1b[{};{}H"
_SET_TITLE_FMT = "\x1b]0;{}\x07"


def move_to_sequence(x: int, y: int) -> str:
    """Absolute cursor move to 0-based column *x*, row *y*."""
    return _MOVE_TO_FMT.format(y + 1, x + 1)


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def move_to(self, x: int, y: int) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...

    def set_title(self, title: str) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by ``sys.stdin``/``sys.stdout``.

    Manages raw mode via :mod:`tty` and :mod:`termios`, bracketed paste,
    optional SGR mouse reporting and the alternate screen.
    """

    def __init__(
        self,
        *,
        mouse: bool = True,
        alternate_screen: bool = True,
        poll_interval: float = 0.05,
    ) -> None:
        self._mouse = mouse
        self._alternate_screen = alternate_screen
        self._poll_interval = poll_interval
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: signal.Handlers | None = None
        self._reader: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._write_log_path: str = os.environ.get("TRELLIS_WRITE_LOG", "")

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Enable raw mode and start the stdin reader thread."""
        self._input_handler = on_input
        self._resize_handler = on_resize

        fd = sys.stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

        if self._alternate_screen:
            self._raw_write(_ALT_SCREEN_ENABLE)
        self._raw_write(_BRACKETED_PASTE_ENABLE)
        if self._mouse:
            self._raw_write(_MOUSE_ENABLE)

        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)

        self._stop_event.clear()
        self._reader = threading.Thread(
            target=self._read_loop, name="trellis-stdin", daemon=True
        )
        self._reader.start()

    def stop(self) -> None:
        """Stop the reader and restore the terminal state."""
        self._stop_event.set()
        if self._reader is not None and self._reader is not threading.current_thread():
            self._reader.join(timeout=1.0)
        self._reader = None

        if self._mouse:
            self._raw_write(_MOUSE_DISABLE)
        self._raw_write(_BRACKETED_PASTE_DISABLE)
        self._raw_write(_SHOW_CURSOR)
        if self._alternate_screen:
            self._raw_write(_ALT_SCREEN_DISABLE)

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        if self._original_termios is not None:
            termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, self._original_termios)
            self._original_termios = None

        self._input_handler = None
        self._resize_handler = None

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write data to stdout and optionally to the write log."""
        self._raw_write(data)

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a") as f:
                    f.write(data)
            except OSError:
                logger.debug("could not append to write log %s", self._write_log_path)

    # -- cursor / screen manipulation --------------------------------------

    def move_to(self, x: int, y: int) -> None:
        self._raw_write(move_to_sequence(x, y))

    def hide_cursor(self) -> None:
        self._raw_write(_HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._raw_write(_SHOW_CURSOR)

    def clear_screen(self) -> None:
        self._raw_write(_CLEAR_SCREEN)

    def set_title(self, title: str) -> None:
        self._raw_write(_SET_TITLE_FMT.format(title))

    # -- private: stdin reading --------------------------------------------

    def _read_loop(self) -> None:
        fd = sys.stdin.fileno()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while not self._stop_event.is_set():
            try:
                ready, _, _ = select.select([fd], [], [], self._poll_interval)
            except (OSError, ValueError):
                return
            if not ready:
                continue
            try:
                raw = os.read(fd, 4096)
            except OSError:
                return
            if not raw:
                return
            data = decoder.decode(raw)
            if data and self._input_handler is not None:
                self._input_handler(data)

    # -- private: SIGWINCH -------------------------------------------------

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        if self._resize_handler is not None:
            self._resize_handler()

    # -- private: raw write ------------------------------------------------

    def _raw_write(self, data: str) -> None:
        """Write directly to stdout, bypassing buffering."""
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except OSError:
            logger.debug("stdout write failed", exc_info=True)
