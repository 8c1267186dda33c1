"""Exception hierarchy.

Only programming errors are raised. Recoverable conditions (an unchanged
state value, an effect whose dependencies did not move, a focus request on an
unfocusable element) are reported through return values, and out-of-range
coordinates are clipped, so nothing here should be caught for control flow.
"""

from __future__ import annotations


class TrellisError(Exception):
    """Base class for all errors raised by the engine."""


class InvariantViolation(TrellisError):
    """A broken invariant in calling code. Rendering cannot safely continue.

    ``component_id`` and ``hook_index`` identify the offending component
    instance when the violation happened inside a render.
    """

    def __init__(
        self,
        message: str,
        *,
        component_id: str | None = None,
        hook_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.component_id = component_id
        self.hook_index = hook_index

    def diagnostic(self) -> str:
        """Return a one-line description suitable for a fatal exit message."""
        parts = [str(self)]
        if self.component_id is not None:
            parts.append(f"component={self.component_id}")
        if self.hook_index is not None:
            parts.append(f"hook_index={self.hook_index}")
        return " ".join(parts)


class HookCountMismatch(InvariantViolation):
    """A component called more (or fewer) hooks than on its first render."""


class HookTypeMismatch(InvariantViolation):
    """The hook at a given index changed type between renders."""


class ReentrantRenderError(InvariantViolation):
    """A render was started while the same instance or renderer was rendering."""


class BuilderFinalizedError(InvariantViolation):
    """An element builder was modified after ``build()``."""


class ZIndexUnderflow(InvariantViolation):
    """``ZIndexContext.exit()`` was called without a matching ``enter()``."""


class FrameStateError(InvariantViolation):
    """The buffer lifecycle (clear, write, commit, present, swap) was violated."""
