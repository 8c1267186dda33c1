"""Text measurement helpers: grapheme segmentation and display width.

Cells in the screen buffer hold one grapheme cluster each, so everything that
places text on the grid goes through :func:`split_graphemes` and
:func:`grapheme_width` here.
"""

from __future__ import annotations

import re
import unicodedata

import grapheme
import wcwidth as _wcwidth


# ---------------------------------------------------------------------------
# Escape-sequence stripping
# ---------------------------------------------------------------------------

_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"           # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"   # APC
)


def strip_ansi(text: str) -> str:
    """Remove escape sequences from *text*."""
    if "\x1b" not in text:
        return text
    return _STRIP_RE.sub("", text)


# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------

def grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Control characters and combining marks are zero width, emoji sequences
    (VS16, ZWJ, skin tones, regional indicators) are two cells, everything
    else is delegated to ``wcwidth``.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        if cp in (0xFE0F, 0x200D):
            return 2
        if 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first_cp = ord(g[0])
    if first_cp >= 0x1F000 or 0x2600 <= first_cp <= 0x27BF:
        return 2

    cat = unicodedata.category(g[0])
    if cat.startswith("M") or cat == "Cf":
        return 0

    return max(_wcwidth.wcwidth(g[0]), 0)


def split_graphemes(text: str) -> list[str]:
    """Split *text* into grapheme clusters."""
    if text.isascii():
        return list(text)
    return list(grapheme.graphemes(text))


# ---------------------------------------------------------------------------
# visible_width
# ---------------------------------------------------------------------------

def visible_width(text: str) -> int:
    """Calculate the number of terminal columns *text* occupies.

    Escape sequences are ignored and tabs count as 3 spaces. Only the first
    line is measured; use :func:`text_size` for multi-line payloads.
    """
    if not text:
        return 0
    text = text.split("\n", 1)[0]

    stripped = strip_ansi(text).replace("\t", "   ")
    if not stripped:
        return 0

    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = 0
    for g in grapheme.graphemes(stripped):
        total += grapheme_width(g)
    return _cache_width(stripped, total)


def text_size(text: str) -> tuple[int, int]:
    """Return ``(columns, lines)`` for a possibly multi-line string."""
    if not text:
        return 0, 0
    lines = text.split("\n")
    return max(visible_width(line) for line in lines), len(lines)
