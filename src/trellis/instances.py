"""Component instances and the reconciler that expands them into nodes.

A *component* is a plain function ``fn(ctx, **props)`` that returns a node
tree.  Calling a function decorated with :func:`component` does not run it;
it returns a :class:`ComponentDescriptor` that the :class:`Reconciler`
expands during a frame.

Each descriptor is bound to a persistent :class:`ComponentInstance`, looked
up by ``(parent instance, child identity)``.  The child identity is the
caller-supplied ``key`` or, failing that, a path derived from the
descriptor's position in its parent's output plus the function's qualified
name.  Instances whose identity does not appear in a frame are disposed at
the end of that frame, which runs their outstanding effect cleanups.

Component functions only ever see a :class:`RenderContext`; the instance
tree itself stays inside the :class:`ViewInstanceManager`.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence, TypeVar

from trellis.config import RenderConfig
from trellis.errors import InvariantViolation, ReentrantRenderError
from trellis.hooks import (
    EffectFn,
    EffectHook,
    FocusHook,
    HookContext,
    MemoHook,
    Ref,
    RefHook,
    StateHook,
)
from trellis.nodes import ElementNode, FragmentNode, TextNode
from trellis.style import Style

if TYPE_CHECKING:
    from trellis.events import FocusManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComponentDescriptor:
    """An unexpanded component: the function, its props and optional key."""

    fn: Callable[..., Any]
    props: Mapping[str, Any] = field(default_factory=dict)
    key: str | None = None

    @property
    def name(self) -> str:
        return getattr(self.fn, "__qualname__", type(self.fn).__name__)


def component(fn: Callable[..., Any]) -> Callable[..., ComponentDescriptor]:
    """Turn ``fn(ctx, **props)`` into a descriptor factory.

    ``key`` is reserved: it sets the instance identity instead of being
    passed to the function::

        @component
        def counter(ctx, label="Count"):
            count, set_count = ctx.use_state(0)
            return h("text", None, f"{label}: {count}")

        tree = h("vstack", None, counter(key="a"), counter(key="b"))
    """

    @functools.wraps(fn)
    def factory(*, key: Any = None, **props: Any) -> ComponentDescriptor:
        return ComponentDescriptor(fn, props, None if key is None else str(key))

    factory.render_fn = fn  # type: ignore[attr-defined]
    return factory


# ---------------------------------------------------------------------------
# Render context (what a component function receives)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FocusHandle:
    """Result of :meth:`RenderContext.use_focus`.

    Put ``key`` on the element that should receive focus and mark it
    ``focusable``; ``focused`` tells whether it currently holds focus.
    """

    key: str
    focused: bool
    focus: Callable[[], bool]


class RenderContext:
    """Hook API handed to component functions."""

    def __init__(self, instance: ComponentInstance, manager: ViewInstanceManager) -> None:
        self._instance = instance
        self._manager = manager
        self._hooks = instance.hooks

    @property
    def component_id(self) -> str:
        return self._instance.key

    @property
    def config(self) -> RenderConfig:
        return self._manager.config

    def style(self, name: str, default: Style | None = None) -> Style:
        """Look up a named style in the configured theme."""
        return self._manager.config.theme.get(name, default or Style())

    # -- hooks --------------------------------------------------------------

    def use_state(self, initial: T) -> tuple[T, Callable[[T], bool]]:
        hook = self.use_state_hook(initial)
        return hook.value, hook.set

    def use_state_hook(self, initial: T) -> StateHook[T]:
        """Like :meth:`use_state` but returns the hook for ``update(fn)`` access."""
        return self._hooks.use_hook(StateHook, lambda: StateHook(initial, self._hooks))

    def use_effect(self, effect: EffectFn, deps: Sequence[Any] | None = None) -> None:
        hook = self._hooks.use_hook(EffectHook, lambda: EffectHook(self._hooks))
        hook.set_effect(effect, deps)

    def use_memo(self, factory: Callable[[], T], deps: Sequence[Any] | None = None) -> T:
        hook = self._hooks.use_hook(MemoHook, MemoHook)
        return hook.get(factory, deps)

    def use_callback(self, fn: Callable[..., T], deps: Sequence[Any] | None = None) -> Callable[..., T]:
        return self.use_memo(lambda: fn, deps)

    def use_ref(self, initial: T = None) -> Ref[T]:  # type: ignore[assignment]
        return self._hooks.use_hook(RefHook, lambda: RefHook(initial)).ref

    def use_focus(self) -> FocusHandle:
        index = self._hooks.hook_count
        hook = self._hooks.use_hook(
            FocusHook, lambda: FocusHook(f"{self._instance.key}#focus{index}")
        )
        manager = self._manager.focus_manager
        if manager is None:
            return FocusHandle(hook.key, False, lambda: False)
        return FocusHandle(
            hook.key,
            manager.focused_key == hook.key,
            lambda: manager.request_focus(hook.key),
        )


# ---------------------------------------------------------------------------
# Instances
# ---------------------------------------------------------------------------


class ComponentInstance:
    """Persistent identity and hook storage for one component position."""

    def __init__(
        self,
        key: str,
        descriptor: ComponentDescriptor,
        parent_key: str | None,
        request_update: Callable[[], None],
        depth: int = 0,
    ) -> None:
        self.key = key
        self.descriptor = descriptor
        self.parent_key = parent_key
        self.depth = depth
        self.hooks = HookContext(key, request_update)
        self.render_count = 0
        self.disposed = False

    @property
    def initialized(self) -> bool:
        return self.hooks.initialized

    def render(self, manager: ViewInstanceManager) -> Any:
        """Invoke the component function inside a begin/end render bracket."""
        if self.hooks.rendering:
            raise ReentrantRenderError(
                f"Component {self.key} started rendering while already rendering",
                component_id=self.key,
            )
        ctx = RenderContext(self, manager)
        self.hooks.begin_render()
        try:
            output = self.descriptor.fn(ctx, **self.descriptor.props)
        except BaseException:
            self.hooks.abort_render()
            raise
        self.hooks.end_render(run_effects=False)
        self.render_count += 1
        return output

    def dispose(self) -> None:
        if not self.disposed:
            self.disposed = True
            self.hooks.dispose()

    def __repr__(self) -> str:
        return f"ComponentInstance({self.key!r}, renders={self.render_count})"


class ViewInstanceManager:
    """Owns every :class:`ComponentInstance`, keyed by parent and identity."""

    def __init__(
        self,
        config: RenderConfig | None = None,
        request_render: Callable[[], None] | None = None,
    ) -> None:
        self.config = config or RenderConfig()
        self.request_render = request_render
        self.focus_manager: FocusManager | None = None
        self._instances: dict[str, ComponentInstance] = {}
        self._render_order: list[str] = []
        self._seen: set[str] = set()
        self._dirty: set[str] = set()

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, key: object) -> bool:
        return key in self._instances

    def get(self, key: str) -> ComponentInstance | None:
        return self._instances.get(key)

    @property
    def dirty(self) -> frozenset[str]:
        """Instances whose state changed since they last rendered."""
        return frozenset(self._dirty)

    # -- lookup -------------------------------------------------------------

    def get_or_create_instance(
        self,
        descriptor: ComponentDescriptor,
        identity_key: str,
        parent_key: str | None = None,
    ) -> ComponentInstance:
        key = f"{parent_key}/{identity_key}" if parent_key else identity_key
        instance = self._instances.get(key)
        if instance is None:
            parent = self._instances.get(parent_key) if parent_key else None
            instance = ComponentInstance(
                key,
                descriptor,
                parent_key,
                lambda: self._on_update(key),
                depth=0 if parent is None else parent.depth + 1,
            )
            self._instances[key] = instance
            logger.debug("created component instance %s", key)
        else:
            instance.descriptor = descriptor
        return instance

    def _on_update(self, key: str) -> None:
        self._dirty.add(key)
        if self.request_render is not None:
            self.request_render()

    # -- frame bracket ------------------------------------------------------

    def begin_frame(self) -> None:
        self._seen = set()
        self._render_order = []

    def render_instance(self, instance: ComponentInstance) -> Any:
        if instance.key in self._seen:
            raise InvariantViolation(
                f"Component identity {instance.key} appears twice in one frame; "
                "give sibling components distinct keys",
                component_id=instance.key,
            )
        self._seen.add(instance.key)
        self._render_order.append(instance.key)
        self._dirty.discard(instance.key)
        return instance.render(self)

    def end_frame(self) -> list[str]:
        """Dispose instances not rendered this frame; return their keys."""
        stale = [key for key in self._instances if key not in self._seen]
        # Children before parents so nested cleanups see their parents alive.
        stale.sort(key=lambda k: self._instances[k].depth, reverse=True)
        for key in stale:
            self._instances.pop(key).dispose()
            self._dirty.discard(key)
            logger.debug("disposed component instance %s", key)
        return stale

    def commit_effects(self) -> int:
        """Run pending effects, instance render order then declaration order."""
        ran = 0
        for key in self._render_order:
            instance = self._instances.get(key)
            if instance is not None:
                ran += instance.hooks.run_pending_effects()
        return ran

    def dispose_all(self) -> None:
        for key in sorted(self._instances, key=lambda k: self._instances[k].depth, reverse=True):
            self._instances[key].dispose()
        self._instances.clear()
        self._render_order = []
        self._dirty.clear()


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class Reconciler:
    """Expands a tree containing component descriptors into plain nodes."""

    def __init__(self, manager: ViewInstanceManager) -> None:
        self.manager = manager

    def reconcile(self, root: Any) -> Any:
        """Render every component in *root* and return the resulting node tree."""
        self.manager.begin_frame()
        node = self._expand(root, None, ())
        self.manager.end_frame()
        return node

    def _expand(self, item: Any, parent_key: str | None, position: tuple[int, ...]) -> Any:
        if isinstance(item, ComponentDescriptor):
            identity = item.key or "{}:{}".format(
                ".".join(str(i) for i in position) or "0", item.name
            )
            instance = self.manager.get_or_create_instance(item, identity, parent_key)
            output = self.manager.render_instance(instance)
            if output is None:
                return FragmentNode((), item.key)
            return self._expand(output, instance.key, ())

        if isinstance(item, TextNode):
            return item

        if isinstance(item, str):
            return TextNode(item)

        if isinstance(item, ElementNode):
            return item.with_children(
                self._expand(child, parent_key, position + (i,))
                for i, child in enumerate(item.children)
            )

        if isinstance(item, FragmentNode):
            return item.with_children(
                self._expand(child, parent_key, position + (i,))
                for i, child in enumerate(item.children)
            )

        raise TypeError(f"Cannot render object of type {type(item).__name__}")
