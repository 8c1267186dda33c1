"""Keyboard and mouse input decoding.

Raw terminal input arrives in arbitrary chunks.  :class:`InputDecoder`
buffers partial escape sequences, splits the stream into complete
sequences (:func:`split_sequences`) and turns each into a
:class:`KeyEvent` or :class:`MouseEvent` (:func:`parse_sequence`).

Key identifiers follow the ``"ctrl+shift+alt+name"`` convention, e.g.
``"a"``, ``"ctrl+c"``, ``"shift+tab"``, ``"alt+x"``, ``"pageUp"``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

KeyId = str


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyEvent:
    """A key press.  ``key`` is the full identifier including modifiers."""

    key: KeyId
    raw: str = ""

    @property
    def name(self) -> str:
        """The key without modifier prefixes."""
        return self.key.rsplit("+", 1)[-1] if self.key != "+" else "+"

    @property
    def ctrl(self) -> bool:
        return "ctrl+" in self.key

    @property
    def alt(self) -> bool:
        return "alt+" in self.key

    @property
    def shift(self) -> bool:
        return "shift+" in self.key

    @property
    def char(self) -> str | None:
        """The printable character typed, if any."""
        if len(self.key) == 1:
            return self.key
        if self.key == "space":
            return " "
        return None


@dataclass(frozen=True)
class MouseEvent:
    """An SGR mouse report.  Coordinates are 0-based cells."""

    x: int
    y: int
    button: int
    action: str  # "press", "release", "move" or "scroll"
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    raw: str = ""


@dataclass(frozen=True)
class PasteEvent:
    text: str


InputEvent = Union[KeyEvent, MouseEvent, PasteEvent]


# ---------------------------------------------------------------------------
# Key tables
# ---------------------------------------------------------------------------

LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1bOP": "f1",
    "\x1bOQ": "f2",
    "\x1bOR": "f3",
    "\x1bOS": "f4",
    "\x1b[15~": "f5",
    "\x1b[17~": "f6",
    "\x1b[18~": "f7",
    "\x1b[19~": "f8",
    "\x1b[20~": "f9",
    "\x1b[21~": "f10",
    "\x1b[23~": "f11",
    "\x1b[24~": "f12",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[E": "clear",
    "\x1b[Z": "shift+tab",
}

# Final byte of ``CSI 1;<mod> X`` sequences.
_CSI_LETTER_KEYS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

# Number of ``CSI <n>;<mod> ~`` sequences.
_CSI_TILDE_KEYS = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageUp",
    6: "pageDown",
    15: "f5",
    17: "f6",
    18: "f7",
    19: "f8",
    20: "f9",
    21: "f10",
    23: "f11",
    24: "f12",
}

_MOD_SHIFT = 1
_MOD_ALT = 2
_MOD_CTRL = 4

_CSI_MOD_LETTER_RE = re.compile(r"^\x1b\[1;(\d+)([A-HPQRS])$")
_CSI_MOD_TILDE_RE = re.compile(r"^\x1b\[(\d+);(\d+)~$")
_SS3_MOD_RE = re.compile(r"^\x1bO(\d+)([PQRS])$")
_SGR_MOUSE_RE = re.compile(r"^\x1b\[<(\d+);(\d+);(\d+)([Mm])$")


def _prefix(modifier: int) -> str:
    """Identifier prefix for an xterm modifier parameter (1 + bitmask)."""
    mod = max(0, modifier - 1)
    out = ""
    if mod & _MOD_CTRL:
        out += "ctrl+"
    if mod & _MOD_SHIFT:
        out += "shift+"
    if mod & _MOD_ALT:
        out += "alt+"
    return out


# ---------------------------------------------------------------------------
# parse_key / parse_sequence
# ---------------------------------------------------------------------------


def parse_key(data: str) -> KeyId | None:  # noqa: C901
    """Return the key identifier for one complete input sequence, or ``None``."""
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    m = _CSI_MOD_LETTER_RE.match(data)
    if m:
        return _prefix(int(m.group(1))) + _CSI_LETTER_KEYS[m.group(2)]

    m = _CSI_MOD_TILDE_RE.match(data)
    if m:
        name = _CSI_TILDE_KEYS.get(int(m.group(1)))
        return None if name is None else _prefix(int(m.group(2))) + name

    m = _SS3_MOD_RE.match(data)
    if m:
        return _prefix(int(m.group(1))) + _CSI_LETTER_KEYS[m.group(2)]

    if data == ESC:
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x00":
        return "ctrl+space"

    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    if len(data) == 2 and data[0] == ESC:
        ch = data[1]
        if ch == ESC:
            return "alt+escape"
        if ch in ("\r", "\n"):
            return "alt+enter"
        if ch == "\t":
            return "alt+tab"
        if ch == " ":
            return "alt+space"
        if ch in ("\x7f", "\x08"):
            return "alt+backspace"
        if 1 <= ord(ch) <= 26:
            return "ctrl+alt+" + chr(ord(ch) + ord("a") - 1)
        if ch.isupper():
            return "shift+alt+" + ch.lower()
        if ch.isprintable():
            return "alt+" + ch

    if not data.startswith(ESC) and data.isprintable():
        return data

    return None


def parse_mouse(data: str) -> MouseEvent | None:
    """Decode an SGR (``CSI < b ; x ; y M/m``) mouse report."""
    m = _SGR_MOUSE_RE.match(data)
    if not m:
        return None
    code = int(m.group(1))
    x = int(m.group(2)) - 1
    y = int(m.group(3)) - 1
    release = m.group(4) == "m"

    button = code & 0b11
    if code & 64:
        action = "scroll"
        button = 4 + (code & 1)
    elif code & 32:
        action = "move"
    elif release:
        action = "release"
    else:
        action = "press"

    return MouseEvent(
        x=max(0, x),
        y=max(0, y),
        button=button,
        action=action,
        shift=bool(code & 4),
        alt=bool(code & 8),
        ctrl=bool(code & 16),
        raw=data,
    )


def parse_sequence(data: str) -> InputEvent | None:
    mouse = parse_mouse(data)
    if mouse is not None:
        return mouse
    key = parse_key(data)
    if key is None:
        return None
    return KeyEvent(key, data)


# ---------------------------------------------------------------------------
# Sequence splitting
# ---------------------------------------------------------------------------


def _sequence_status(data: str) -> str:
    """``"complete"``, ``"incomplete"`` or ``"not-escape"`` for a candidate."""
    if not data.startswith(ESC):
        return "not-escape"
    if len(data) == 1:
        return "incomplete"

    after = data[1:]
    if after.startswith("["):
        if after.startswith("[M"):
            # X10 mouse: ESC [ M b x y
            return "complete" if len(data) >= 6 else "incomplete"
        if len(data) < 3:
            return "incomplete"
        last = data[-1]
        if not 0x40 <= ord(last) <= 0x7E:
            return "incomplete"
        payload = data[2:]
        if payload.startswith("<"):
            return "complete" if _SGR_MOUSE_RE.match(data) else (
                "incomplete" if last not in "Mm" else "complete"
            )
        return "complete"

    if after.startswith("]"):
        if data.endswith(ESC + "\\") or data.endswith("\x07"):
            return "complete"
        return "incomplete"

    if after.startswith(("P", "_")):
        return "complete" if data.endswith(ESC + "\\") else "incomplete"

    if after.startswith("O"):
        if len(after) < 2:
            return "incomplete"
        # SS3 with a modifier digit, e.g. ESC O 5 P
        if after[1].isdigit():
            return "complete" if len(after) >= 3 else "incomplete"
        return "complete"

    return "complete"


def split_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete sequences.

    Returns ``(sequences, remainder)`` where *remainder* is a trailing
    partial escape sequence to be retried when more input arrives.
    """
    sequences: list[str] = []
    pos = 0
    n = len(buffer)

    while pos < n:
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue

        end = pos + 1
        while True:
            status = _sequence_status(buffer[pos:end])
            if status != "incomplete":
                sequences.append(buffer[pos:end])
                pos = end
                break
            if end >= n:
                return sequences, buffer[pos:]
            end += 1

    return sequences, ""


class InputDecoder:
    """Stateful decoder turning raw input chunks into events.

    Bracketed paste content is collected into a single :class:`PasteEvent`.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._paste: list[str] | None = None

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, data: str) -> list[InputEvent]:
        self._buffer += data
        events: list[InputEvent] = []

        while self._buffer:
            if self._paste is not None:
                end = self._buffer.find(BRACKETED_PASTE_END)
                if end < 0:
                    self._paste.append(self._buffer)
                    self._buffer = ""
                    break
                self._paste.append(self._buffer[:end])
                events.append(PasteEvent("".join(self._paste)))
                self._paste = None
                self._buffer = self._buffer[end + len(BRACKETED_PASTE_END):]
                continue

            start = self._buffer.find(BRACKETED_PASTE_START)
            chunk = self._buffer if start < 0 else self._buffer[:start]
            sequences, remainder = split_sequences(chunk)
            events.extend(e for e in map(parse_sequence, sequences) if e is not None)

            if start < 0:
                self._buffer = remainder
                break
            self._paste = []
            self._buffer = self._buffer[start + len(BRACKETED_PASTE_START):]

        return events

    def flush(self) -> list[InputEvent]:
        """Emit whatever is buffered as-is (e.g. a lone ESC after a timeout)."""
        data, self._buffer = self._buffer, ""
        if not data or self._paste is not None:
            return []
        event = parse_sequence(data)
        return [event] if event is not None else []


def parse_input(data: str) -> list[InputEvent]:
    """Decode a complete chunk of input in one go."""
    decoder = InputDecoder()
    return decoder.feed(data) + decoder.flush()
