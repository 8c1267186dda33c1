"""Hook storage for component instances.

Each component instance owns a :class:`HookContext`.  A render is bracketed
by :meth:`HookContext.begin_render` and :meth:`HookContext.end_render`; in
between, every hook call goes through :meth:`HookContext.use_hook`, which
identifies the hook purely by its call-order index.

The first completed render fixes the number and types of hooks.  Any later
render that calls more hooks, fewer hooks, or a different hook type at some
index raises an :class:`~trellis.errors.InvariantViolation`; a component's
state cannot be trusted after that, so these are never recovered from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from trellis.errors import HookCountMismatch, HookTypeMismatch

logger = logging.getLogger(__name__)

T = TypeVar("T")
H = TypeVar("H", bound="Hook")

EffectFn = Callable[[], "Callable[[], None] | None"]

_MISSING: Any = object()


# ---------------------------------------------------------------------------
# Dependency comparison
# ---------------------------------------------------------------------------


def deps_changed(previous: Sequence[Any] | None, current: Sequence[Any] | None) -> bool:
    """Element-wise dependency comparison shared by effects and memos.

    Two ``None`` lists are unchanged.  A switch between ``None`` and a list,
    a length change, or any unequal element counts as a change.
    """
    if previous is None and current is None:
        return False
    if previous is None or current is None:
        return True
    if len(previous) != len(current):
        return True
    return any(not _dep_equal(a, b) for a, b in zip(previous, current))


def _dep_equal(a: Any, b: Any) -> bool:
    return a is b or a == b


# ---------------------------------------------------------------------------
# Hook types
# ---------------------------------------------------------------------------


class Hook:
    """Base class for hook slots."""

    def dispose(self) -> None:
        pass


class StateHook(Hook, Generic[T]):
    """A value with a setter.

    Setting a value equal to the latest one is a no-op.  Otherwise the new
    value is held as *pending* and becomes :attr:`value` at the start of the
    owning instance's next render, so a render in progress never observes a
    change made during that same render.
    """

    def __init__(self, initial: T, context: HookContext) -> None:
        self._value = initial
        self._pending: Any = _MISSING
        self._context = context

    @property
    def value(self) -> T:
        return self._value

    @property
    def latest(self) -> T:
        """The value the next render will see."""
        return self._value if self._pending is _MISSING else self._pending

    def set(self, value: T) -> bool:
        """Store *value*; return ``True`` if a re-render was requested."""
        if _dep_equal(self.latest, value):
            logger.debug(
                "state unchanged in %s, skipping re-render", self._context.component_id
            )
            return False
        self._pending = value
        self._context.request_update()
        return True

    def update(self, fn: Callable[[T], T]) -> bool:
        """Functional form of :meth:`set`: ``fn`` receives the latest value."""
        return self.set(fn(self.latest))

    def has_pending(self) -> bool:
        return self._pending is not _MISSING

    def commit_pending(self) -> None:
        if self._pending is not _MISSING:
            self._value = self._pending
            self._pending = _MISSING


class EffectHook(Hook):
    """A side effect gated by a dependency list.

    The effect body may return a cleanup callable, which runs before the next
    execution of the effect and when the hook is disposed.
    """

    def __init__(self, context: HookContext) -> None:
        self._context = context
        self._cleanup: Callable[[], None] | None = None
        self._deps: tuple[Any, ...] | None = None
        self._has_run = False
        self.run_count = 0

    def set_effect(self, effect: EffectFn, deps: Sequence[Any] | None = None) -> bool:
        """Queue *effect* if it should run this render; return whether it was queued."""
        if self._has_run and deps is not None and not deps_changed(self._deps, deps):
            logger.debug(
                "effect dependencies unchanged in %s", self._context.component_id
            )
            return False

        self._deps = None if deps is None else tuple(deps)
        self._has_run = True
        self._context.schedule_effect(lambda: self._run(effect))
        return True

    def _run(self, effect: EffectFn) -> None:
        self._run_cleanup()
        result = effect()
        self._cleanup = result if callable(result) else None
        self.run_count += 1

    def _run_cleanup(self) -> None:
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is not None:
            cleanup()

    def dispose(self) -> None:
        self._run_cleanup()


class MemoHook(Hook, Generic[T]):
    """A cached value recomputed only when its dependencies change.

    A ``None`` dependency list computes once and caches for the lifetime of
    the instance.
    """

    def __init__(self) -> None:
        self._value: Any = _MISSING
        self._deps: tuple[Any, ...] | None = None

    def get(self, factory: Callable[[], T], deps: Sequence[Any] | None = None) -> T:
        if self._value is _MISSING or deps_changed(self._deps, deps):
            self._value = factory()
            self._deps = None if deps is None else tuple(deps)
        return self._value

    def dispose(self) -> None:
        self._value = _MISSING


@dataclass
class Ref(Generic[T]):
    """A mutable cell that survives re-renders without triggering them."""

    current: T


class RefHook(Hook, Generic[T]):
    def __init__(self, initial: T) -> None:
        self.ref: Ref[T] = Ref(initial)


class FocusHook(Hook):
    """Reserves a stable focus key for a component."""

    def __init__(self, key: str) -> None:
        self.key = key


# ---------------------------------------------------------------------------
# HookContext
# ---------------------------------------------------------------------------


class HookContext:
    """Per-instance hook list, cursor and pending-effect queue."""

    def __init__(
        self,
        component_id: str,
        request_update: Callable[[], None] | None = None,
    ) -> None:
        self.component_id = component_id
        self.request_update_callback = request_update
        self._hooks: list[Hook] = []
        self._index = 0
        self._initialized = False
        self._rendering = False
        self._pending_effects: list[Callable[[], None]] = []

    @property
    def initialized(self) -> bool:
        """``True`` once the first render has completed."""
        return self._initialized

    @property
    def hook_count(self) -> int:
        return len(self._hooks)

    @property
    def hooks(self) -> tuple[Hook, ...]:
        return tuple(self._hooks)

    @property
    def rendering(self) -> bool:
        return self._rendering

    @property
    def pending_effect_count(self) -> int:
        return len(self._pending_effects)

    # -- render bracket -----------------------------------------------------

    def begin_render(self) -> None:
        """Reset the hook cursor and make pending state values visible."""
        self._index = 0
        self._rendering = True
        for hook in self._hooks:
            if isinstance(hook, StateHook):
                hook.commit_pending()

    def use_hook(self, hook_type: type[H], factory: Callable[[], H]) -> H:
        """Return the hook at the cursor, creating it on the first render."""
        index = self._index
        if index >= len(self._hooks):
            if self._initialized:
                raise HookCountMismatch(
                    f"Hook count mismatch in component {self.component_id}: "
                    f"hook {index} was not called on the first render. "
                    "Hooks must not be called conditionally.",
                    component_id=self.component_id,
                    hook_index=index,
                )
            hook = factory()
            self._hooks.append(hook)
            self._index += 1
            return hook

        existing = self._hooks[index]
        if type(existing) is not hook_type:
            raise HookTypeMismatch(
                f"Hook type mismatch in component {self.component_id} at index {index}: "
                f"expected {hook_type.__name__} but found {type(existing).__name__}.",
                component_id=self.component_id,
                hook_index=index,
            )
        self._index += 1
        return existing  # type: ignore[return-value]

    def validate_hook_order(self) -> None:
        if self._initialized and self._index != len(self._hooks):
            raise HookCountMismatch(
                f"Hook count mismatch in component {self.component_id}: "
                f"expected {len(self._hooks)} hooks but {self._index} were called.",
                component_id=self.component_id,
                hook_index=self._index,
            )

    def end_render(self, run_effects: bool = True) -> None:
        """Close the render.

        With *run_effects* the queued effects run immediately; the renderer
        passes ``False`` and calls :meth:`run_pending_effects` itself once the
        frame has been presented.
        """
        self._rendering = False
        self.validate_hook_order()
        self._initialized = True
        if run_effects:
            self.run_pending_effects()

    def abort_render(self) -> None:
        """Drop the effects queued by a render that raised."""
        self._rendering = False
        self._pending_effects.clear()

    # -- effects ------------------------------------------------------------

    def schedule_effect(self, effect: Callable[[], None]) -> None:
        self._pending_effects.append(effect)

    def run_pending_effects(self) -> int:
        """Run queued effects in declaration order and return how many ran."""
        effects, self._pending_effects = self._pending_effects, []
        for effect in effects:
            effect()
        return len(effects)

    # -- updates ------------------------------------------------------------

    def request_update(self) -> None:
        if self.request_update_callback is not None:
            self.request_update_callback()

    def has_pending_state(self) -> bool:
        return any(isinstance(h, StateHook) and h.has_pending() for h in self._hooks)

    # -- teardown -----------------------------------------------------------

    def dispose(self) -> None:
        """Dispose every hook, running outstanding effect cleanups."""
        self._pending_effects.clear()
        for hook in self._hooks:
            hook.dispose()
        self._hooks.clear()
