"""Focus management and input routing.

The painter reports, for each frame, which elements are focusable and where
clickable areas are.  :class:`FocusManager` tracks the focused element by
its ``key`` (so focus survives re-renders that rebuild the tree) and
:class:`EventRouter` dispatches one input event at a time:

1. a global handler registered for the exact key identifier,
2. Tab / Shift+Tab focus navigation,
3. the focused element's ``on_key`` handler (``enter``/``space`` fall back
   to its ``on_click``),

and mouse presses go to the topmost element under the pointer.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from trellis.keys import InputEvent, KeyEvent, MouseEvent, PasteEvent
from trellis.painter import FocusTarget, PaintResult

logger = logging.getLogger(__name__)

KeyHandler = Callable[[KeyEvent], Any]

FOCUS_NEXT = 1
FOCUS_PREVIOUS = -1


class FocusManager:
    """Keeps track of the focusable elements and which one has focus."""

    def __init__(self, on_change: Callable[[str | None], None] | None = None) -> None:
        self.on_change = on_change
        self._targets: list[FocusTarget] = []
        self._focused_key: str | None = None
        self._requested_key: str | None = None

    @property
    def focused_key(self) -> str | None:
        return self._focused_key

    @property
    def focused(self) -> FocusTarget | None:
        for target in self._targets:
            if target.key == self._focused_key:
                return target
        return None

    @property
    def targets(self) -> tuple[FocusTarget, ...]:
        return tuple(self._targets)

    def keys(self) -> list[str]:
        return [t.key for t in self._targets]

    def register(self, target: FocusTarget) -> None:
        if target.key not in self.keys():
            self._targets.append(target)

    def update(self, targets: list[FocusTarget]) -> None:
        """Replace the focusable set with this frame's targets (in paint order)."""
        self._targets = list(targets)
        keys = self.keys()
        if self._requested_key is not None and self._requested_key in keys:
            requested, self._requested_key = self._requested_key, None
            self.set_focus(requested)
        elif self._focused_key is not None and self._focused_key not in keys:
            logger.debug("focused element %s disappeared", self._focused_key)
            self._set(None)

    def set_focus(self, key: str | None) -> bool:
        """Focus the element with *key*; return whether focus changed.

        Keys that are not currently focusable are ignored.
        """
        if key is not None and key not in self.keys():
            logger.debug("focus request for unfocusable element %s ignored", key)
            return False
        if key == self._focused_key:
            return False
        self._set(key)
        return True

    def request_focus(self, key: str) -> bool:
        """Focus *key* now if it is focusable, otherwise once it appears."""
        if key in self.keys():
            return self.set_focus(key)
        self._requested_key = key
        return False

    def blur(self) -> bool:
        return self.set_focus(None)

    def move_focus(self, direction: int = FOCUS_NEXT) -> bool:
        """Cycle focus forwards or backwards, wrapping around."""
        keys = self.keys()
        if not keys:
            return False
        if self._focused_key not in keys:
            index = 0 if direction >= 0 else len(keys) - 1
        else:
            index = (keys.index(self._focused_key) + direction) % len(keys)
        return self.set_focus(keys[index])

    def _set(self, key: str | None) -> None:
        self._focused_key = key
        if self.on_change is not None:
            self.on_change(key)


class EventRouter:
    """Dispatches input events to global handlers, focus navigation or elements."""

    def __init__(self, focus: FocusManager) -> None:
        self.focus = focus
        self._global: dict[str, list[KeyHandler]] = {}

    def on_key(self, key: str, handler: KeyHandler) -> Callable[[], None]:
        """Register a global handler for *key*; returns an unregister function."""
        handlers = self._global.setdefault(key, [])
        handlers.append(handler)

        def _remove() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return _remove

    def route(self, event: InputEvent, paint: PaintResult | None = None) -> bool:
        if isinstance(event, KeyEvent):
            return self.route_key(event)
        if isinstance(event, MouseEvent):
            return self.route_mouse(event, paint)
        if isinstance(event, PasteEvent):
            return self.route_paste(event)
        return False

    def route_key(self, event: KeyEvent) -> bool:
        handlers = self._global.get(event.key)
        if handlers:
            for handler in list(handlers):
                handler(event)
            return True

        if event.key == "tab":
            return self.focus.move_focus(FOCUS_NEXT) or bool(self.focus.keys())
        if event.key == "shift+tab":
            return self.focus.move_focus(FOCUS_PREVIOUS) or bool(self.focus.keys())

        target = self.focus.focused
        if target is None:
            return False

        on_key = target.node.get("on_key")
        if on_key is not None and on_key(event):
            return True

        on_click = target.node.get("on_click")
        if on_click is not None and event.key in ("enter", "space"):
            on_click(event)
            return True

        logger.debug("key %s not handled by %s", event.key, target.key)
        return False

    def route_mouse(self, event: MouseEvent, paint: PaintResult | None) -> bool:
        if paint is None or event.action != "press":
            return False
        region = paint.hit_test(event.x, event.y)
        if region is None:
            return False

        node = region.node
        if node.get("focusable") and node.key is not None:
            self.focus.set_focus(node.key)
        on_click = node.get("on_click")
        if on_click is not None:
            on_click(event)
        return True

    def route_paste(self, event: PasteEvent) -> bool:
        target = self.focus.focused
        if target is None:
            return False
        on_paste = target.node.get("on_paste")
        if on_paste is None:
            return False
        on_paste(event.text)
        return True
