"""Nested z-index accumulation.

Each ``enter(z)`` layers a relative z-index on top of the current absolute
one; ``exit()`` restores the previous level.  An ``exit()`` without a
matching ``enter()`` means the caller's traversal is broken and raises
:class:`~trellis.errors.ZIndexUnderflow`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from trellis.errors import ZIndexUnderflow


class ZIndexContext:
    def __init__(self, base: int = 0) -> None:
        self._base = base
        self._stack: list[int] = []

    @property
    def current(self) -> int:
        return self._stack[-1] if self._stack else self._base

    @property
    def depth(self) -> int:
        return len(self._stack)

    def enter(self, z: int = 0) -> int:
        """Push ``current + z`` and return it."""
        level = self.current + z
        self._stack.append(level)
        return level

    def exit(self) -> int:
        """Pop the innermost level and return the new current level."""
        if not self._stack:
            raise ZIndexUnderflow("ZIndexContext.exit() called without a matching enter()")
        self._stack.pop()
        return self.current

    @contextmanager
    def layer(self, z: int = 0) -> Iterator[int]:
        level = self.enter(z)
        try:
            yield level
        finally:
            self.exit()
