"""Colors, text modifiers and SGR escape generation.

A :class:`Style` is a foreground :class:`Color`, a background :class:`Color`
and a :class:`Modifier` bitset.  :func:`sgr` turns a style into a single
``ESC[...m`` sequence for a given colour mode, downgrading RGB colours to the
256-colour cube or the 16 basic colours when the terminal cannot show them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping, cast

# ---------------------------------------------------------------------------
# Colour modes
# ---------------------------------------------------------------------------

TRUECOLOR = "truecolor"
COLOR_256 = "256"
COLOR_16 = "16"

COLOR_MODES = (TRUECOLOR, COLOR_256, COLOR_16)


def detect_color_mode(env: Mapping[str, str]) -> str:
    """Guess the colour depth from ``COLORTERM`` and ``TERM``."""
    colorterm = env.get("COLORTERM", "").lower()
    term = env.get("TERM", "").lower()
    if colorterm in ("truecolor", "24bit"):
        return TRUECOLOR
    if "256color" in term:
        return COLOR_256
    return COLOR_16


# ---------------------------------------------------------------------------
# Modifiers
# ---------------------------------------------------------------------------


class Modifier(enum.IntFlag):
    NONE = 0
    BOLD = 1
    DIM = 2
    ITALIC = 4
    UNDERLINE = 8
    BLINK = 16
    INVERSE = 32
    STRIKETHROUGH = 64


_MODIFIER_SGR: tuple[tuple[Modifier, int], ...] = (
    (Modifier.BOLD, 1),
    (Modifier.DIM, 2),
    (Modifier.ITALIC, 3),
    (Modifier.UNDERLINE, 4),
    (Modifier.BLINK, 5),
    (Modifier.INVERSE, 7),
    (Modifier.STRIKETHROUGH, 9),
)


# ---------------------------------------------------------------------------
# Colour
# ---------------------------------------------------------------------------

_NAMED_COLORS = {
    "black": 0,
    "red": 1,
    "green": 2,
    "yellow": 3,
    "blue": 4,
    "magenta": 5,
    "cyan": 6,
    "white": 7,
    "gray": 8,
    "grey": 8,
    "bright_black": 8,
    "bright_red": 9,
    "bright_green": 10,
    "bright_yellow": 11,
    "bright_blue": 12,
    "bright_magenta": 13,
    "bright_cyan": 14,
    "bright_white": 15,
}


@dataclass(frozen=True)
class Color:
    """A terminal colour.

    ``kind`` is ``"index"`` (0-255 palette entry; 0-15 are the basic
    colours) or ``"rgb"``.
    """

    kind: str
    value: int | tuple[int, int, int]

    @classmethod
    def index(cls, n: int) -> Color:
        return cls("index", max(0, min(255, int(n))))

    @classmethod
    def rgb(cls, r: int, g: int, b: int) -> Color:
        return cls("rgb", tuple(max(0, min(255, int(c))) for c in (r, g, b)))  # type: ignore[arg-type]

    @classmethod
    def parse(cls, value: Any) -> Color | None:
        """Accept a ``Color``, a palette index, ``"#rrggbb"`` or a colour name."""
        if value is None or isinstance(value, Color):
            return value
        if isinstance(value, int):
            return cls.index(value)
        if isinstance(value, tuple) and len(value) == 3:
            return cls.rgb(*value)
        name = str(value).strip().lower()
        if name in ("", "default", "none"):
            return None
        if name.startswith("#") and len(name) == 7:
            return cls.rgb(int(name[1:3], 16), int(name[3:5], 16), int(name[5:7], 16))
        if name in _NAMED_COLORS:
            return cls.index(_NAMED_COLORS[name])
        raise ValueError(f"Unknown color: {value!r}")

    def codes(self, foreground: bool, mode: str = TRUECOLOR) -> list[str]:
        """SGR parameters selecting this colour as foreground or background."""
        prefix = "38" if foreground else "48"
        if self.kind == "rgb":
            r, g, b = self.value  # type: ignore[misc]
            if mode == TRUECOLOR:
                return [prefix, "2", str(r), str(g), str(b)]
            if mode == COLOR_256:
                return [prefix, "5", str(rgb_to_256(r, g, b))]
            return [_basic_code(rgb_to_16(r, g, b), foreground)]

        n = cast(int, self.value)
        if n < 16:
            return [_basic_code(n, foreground)]
        if mode == COLOR_16:
            return [_basic_code(n % 16, foreground)]
        return [prefix, "5", str(n)]


def _basic_code(index: int, foreground: bool) -> str:
    if index < 8:
        return str((30 if foreground else 40) + index)
    return str((90 if foreground else 100) + index - 8)


def rgb_to_256(r: int, g: int, b: int) -> int:
    """Nearest entry of the xterm 256-colour palette (grey ramp or 6x6x6 cube)."""
    if r == g == b:
        if r < 8:
            return 16
        if r > 248:
            return 231
        return round((r - 8) / 247 * 24) + 232
    ri = round(r / 255 * 5)
    gi = round(g / 255 * 5)
    bi = round(b / 255 * 5)
    return 16 + 36 * ri + 6 * gi + bi


def rgb_to_16(r: int, g: int, b: int) -> int:
    """Rough mapping of an RGB colour onto the 16 basic colours."""
    brightness = (r + g + b) // 3
    hi = max(r, g, b)
    lo = min(r, g, b)

    if hi - lo < 30:
        if brightness < 64:
            return 0
        if brightness < 192:
            return 8
        if brightness < 224:
            return 7
        return 15

    if r == hi:
        base = 3 if g > b else 1
    elif g == hi:
        if r > b:
            base = 3
        elif b > r:
            base = 6
        else:
            base = 2
    else:
        base = 6 if g > r else (5 if r > g else 4)

    return base + 8 if brightness > 127 else base


# ---------------------------------------------------------------------------
# Style
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Style:
    """Foreground, background and modifiers.  ``None`` colours mean "terminal default"."""

    fg: Color | None = None
    bg: Color | None = None
    modifiers: Modifier = Modifier.NONE

    def __post_init__(self) -> None:
        if self.fg is not None and not isinstance(self.fg, Color):
            object.__setattr__(self, "fg", Color.parse(self.fg))
        if self.bg is not None and not isinstance(self.bg, Color):
            object.__setattr__(self, "bg", Color.parse(self.bg))
        if not isinstance(self.modifiers, Modifier):
            object.__setattr__(self, "modifiers", Modifier(self.modifiers))

    @classmethod
    def of(
        cls,
        fg: Any = None,
        bg: Any = None,
        *,
        bold: bool = False,
        dim: bool = False,
        italic: bool = False,
        underline: bool = False,
        blink: bool = False,
        inverse: bool = False,
        strikethrough: bool = False,
    ) -> Style:
        mods = Modifier.NONE
        for flag, on in (
            (Modifier.BOLD, bold),
            (Modifier.DIM, dim),
            (Modifier.ITALIC, italic),
            (Modifier.UNDERLINE, underline),
            (Modifier.BLINK, blink),
            (Modifier.INVERSE, inverse),
            (Modifier.STRIKETHROUGH, strikethrough),
        ):
            if on:
                mods |= flag
        return cls(Color.parse(fg), Color.parse(bg), mods)

    @property
    def is_default(self) -> bool:
        return self.fg is None and self.bg is None and not self.modifiers

    def has(self, modifier: Modifier) -> bool:
        return bool(self.modifiers & modifier)

    def merge(self, other: Style | None) -> Style:
        """Layer *other* on top: its colours win when set, modifiers accumulate."""
        if other is None or other.is_default:
            return self
        return Style(
            other.fg if other.fg is not None else self.fg,
            other.bg if other.bg is not None else self.bg,
            self.modifiers | other.modifiers,
        )


DEFAULT_STYLE = Style()


def coerce_style(value: Any) -> Style | None:
    """Accept a ``Style`` or a mapping of :meth:`Style.of` keyword arguments."""
    if value is None or isinstance(value, Style):
        return value
    if isinstance(value, Mapping):
        return Style.of(**value)
    raise TypeError(f"Expected Style or mapping, got {type(value).__name__}")


def sgr(style: Style, mode: str = TRUECOLOR) -> str:
    """Full SGR sequence for *style*, starting from a reset."""
    params = ["0"]
    for flag, code in _MODIFIER_SGR:
        if style.modifiers & flag:
            params.append(str(code))
    if style.fg is not None:
        params.extend(style.fg.codes(True, mode))
    if style.bg is not None:
        params.extend(style.bg.codes(False, mode))
    return "\x1b[" + ";".join(params) + "m"


SGR_RESET = "\x1b[0m"
