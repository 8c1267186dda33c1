"""The renderer: frame loop, input hand-off and the two paint paths.

A frame runs, in order:

1. component functions are invoked through the instance manager, producing
   a plain node tree (:class:`~trellis.instances.Reconciler`),
2. the tree is laid out against the screen size and absolute positions are
   resolved,
3. the painter writes the tree into the cleared back buffer,
4. the back buffer is diffed against the front buffer and only the changed
   cells are written to the terminal,
5. focus bookkeeping is refreshed and queued effects run.

:meth:`Renderer.render_patched` is the alternative path: it diffs the new
tree against the previous one, applies the patches, and clears and repaints
only the screen rectangles the patches (or any moved box) touch.  Both paths
end in the same buffer diff, which is what keeps terminal output minimal.

Input is read on the terminal's own thread and handed over through a
thread-safe queue; everything else (instances, hooks, buffers) is touched
only by the thread running :meth:`Renderer.run`.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any, Callable

from trellis.buffer import CellDelta, Rect, TerminalBuffer
from trellis.config import RenderConfig, configure_logging
from trellis.diff import apply_patches, diff
from trellis.errors import InvariantViolation, ReentrantRenderError
from trellis.events import EventRouter, FocusManager, KeyHandler
from trellis.instances import ComponentDescriptor, Reconciler, ViewInstanceManager
from trellis.keys import InputDecoder, InputEvent, KeyEvent
from trellis.layout import LayoutBox, LayoutConstraints, calculate_layout, resolve_absolute
from trellis.nodes import is_node
from trellis.painter import Painter, PaintResult
from trellis.patches import Patch, touched_path
from trellis.screen import Screen
from trellis.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)

_EMPTY_RECT = Rect(0, 0, 0, 0)


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class RenderScheduler:
    """Coalesces render requests into at most one pending frame.

    ``requests`` counts every call to :meth:`request`, which makes it easy
    to assert that something did *not* ask for a re-render.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requested = False
        self.requests = 0

    def request(self) -> None:
        with self._lock:
            self.requests += 1
            self._requested = True

    @property
    def pending(self) -> bool:
        return self._requested

    def take(self) -> bool:
        """Consume the pending request; return whether there was one."""
        with self._lock:
            requested, self._requested = self._requested, False
            return requested


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class Renderer:
    """Drives frames for one root component on one terminal."""

    def __init__(
        self,
        terminal: Terminal,
        config: RenderConfig | None = None,
        *,
        patch_updates: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.terminal = terminal
        self.config = config or RenderConfig()
        self.patch_updates = patch_updates
        self._sleep = sleep

        self.scheduler = RenderScheduler()
        self.focus = FocusManager(on_change=lambda _key: self.scheduler.request())
        self.router = EventRouter(self.focus)
        self.instances = ViewInstanceManager(self.config, request_render=self.scheduler.request)
        self.instances.focus_manager = self.focus
        self.reconciler = Reconciler(self.instances)
        self.screen = Screen(terminal, color_mode=self.config.color_mode)
        self.painter = Painter(self.screen.buffer, self.config.default_style, self.config.theme)

        self._tree: Any = None
        self._layout: LayoutBox | None = None
        self._paint: PaintResult | None = None
        self._painted_focus: str | None = None
        self._needs_full_frame = True

        self._inbox: queue.Queue[tuple[str, str]] = queue.Queue()
        self._decoder = InputDecoder()
        self._rendering = False
        self._running = False
        self._started = False

    # -- accessors ----------------------------------------------------------

    @property
    def tree(self) -> Any:
        """The node tree of the last presented frame."""
        return self._tree

    @property
    def layout(self) -> LayoutBox | None:
        return self._layout

    @property
    def paint_result(self) -> PaintResult | None:
        return self._paint

    @property
    def running(self) -> bool:
        return self._running

    def lines(self) -> list[str]:
        """Text of the screen as last presented."""
        return self.screen.lines()

    def on_key(self, key: str, handler: KeyHandler) -> Callable[[], None]:
        """Register a global key handler; returns an unregister function."""
        return self.router.on_key(key, handler)

    # -- frames -------------------------------------------------------------

    def render_once(self, root: Any) -> list[CellDelta]:
        """Render exactly one full frame of *root* and return the cell deltas.

        *root* may be a component descriptor, a node tree, or a zero-argument
        callable producing either.  Invariant violations propagate.
        """
        with self._frame_guard():
            tree = self.reconciler.reconcile(_resolve_root(root))
            layout = self._compute_layout(tree)

            self.screen.begin_frame(clear=True)
            try:
                paint = self.painter.paint(layout, focused_key=self.focus.focused_key)
            except BaseException:
                self.screen.abort_frame()
                raise
            deltas = self.screen.commit()
            self.screen.present(deltas)

            self._needs_full_frame = False
            self._finish_frame(tree, layout, paint)
            return deltas

    def render_patched(self, root: Any) -> list[CellDelta]:
        """Render *root* by patching the previous tree and repainting dirty rectangles.

        Falls back to :meth:`render_once` for the first frame and after a
        resize.
        """
        if self._tree is None or self._layout is None or self._needs_full_frame:
            return self.render_once(root)

        with self._frame_guard():
            next_tree = self.reconciler.reconcile(_resolve_root(root))
            patches = diff(self._tree, next_tree)
            tree = apply_patches(self._tree, patches)
            layout = self._compute_layout(tree)
            dirty = dirty_rects(self._layout, layout, patches)
            dirty.extend(self._focus_rects(layout))

            self.screen.begin_frame(clear=False)
            try:
                paint = None
                for rect in settle_rects(dirty, self.screen.buffer):
                    self.screen.clear_rect(rect)
                    paint = self.painter.paint(layout, clip=rect, focused_key=self.focus.focused_key)
                if paint is None:
                    paint = self.painter.paint(layout, clip=_EMPTY_RECT, focused_key=self.focus.focused_key)
            except BaseException:
                self.screen.abort_frame()
                raise
            deltas = self.screen.commit()
            self.screen.present(deltas)

            logger.debug("patched frame: %d patches, %d dirty rects", len(patches), len(dirty))
            self._finish_frame(tree, layout, paint)
            return deltas

    def _frame_guard(self) -> _FrameGuard:
        return _FrameGuard(self)

    def _compute_layout(self, tree: Any) -> LayoutBox:
        width, height = self.screen.width, self.screen.height
        box = calculate_layout(tree, LayoutConstraints.loose(width, height), width, height)
        return resolve_absolute(box)

    def _finish_frame(self, tree: Any, layout: LayoutBox, paint: PaintResult) -> None:
        self._tree = tree
        self._layout = layout
        self._paint = paint
        self._painted_focus = self.focus.focused_key
        self.focus.update(paint.focusables)
        self.instances.commit_effects()

    def _focus_rects(self, layout: LayoutBox) -> list[Rect]:
        """Boxes whose focus styling changed since the last frame."""
        current = self.focus.focused_key
        if current == self._painted_focus:
            return []
        rects = []
        for box in layout.walk():
            key = getattr(box.node, "key", None)
            if key is not None and key in (current, self._painted_focus):
                rects.append(subtree_rect(box))
        return rects

    # -- input --------------------------------------------------------------

    def dispatch(self, event: InputEvent) -> bool:
        """Route one input event; quit keys stop the run loop."""
        if isinstance(event, KeyEvent) and event.key in self.config.quit_keys:
            logger.debug("quit key %s pressed", event.key)
            self._running = False
            return True
        return self.router.route(event, self._paint)

    def feed_input(self, data: str) -> None:
        """Thread-safe hand-off of raw terminal input."""
        self._inbox.put(("input", data))

    def notify_resize(self) -> None:
        """Thread-safe (and signal-safe) resize notification."""
        self._inbox.put(("resize", ""))

    def process_input(self) -> int:
        """Drain the input queue on the render thread; return events dispatched."""
        count = 0
        got_input = False
        while True:
            try:
                kind, data = self._inbox.get_nowait()
            except queue.Empty:
                break
            if kind == "resize":
                self._apply_resize()
                continue
            got_input = True
            for event in self._decoder.feed(data):
                self.dispatch(event)
                count += 1

        if not got_input and self._decoder.pending:
            # A partial sequence that saw no follow-up for a whole frame.
            for event in self._decoder.flush():
                self.dispatch(event)
                count += 1
        return count

    def _apply_resize(self) -> None:
        width, height = self.terminal.columns, self.terminal.rows
        if (width, height) == (self.screen.width, self.screen.height):
            return
        logger.debug("terminal resized to %dx%d", width, height)
        self.screen.resize(width, height)
        self._needs_full_frame = True
        self.scheduler.request()

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        if self._started:
            return
        configure_logging(self.config)
        self.terminal.start(self.feed_input, self.notify_resize)
        if not self.config.show_cursor:
            self.terminal.hide_cursor()
        if self.config.clear_on_start:
            self.screen.request_clear()
        self._started = True

    def stop(self) -> None:
        """Dispose components and restore the terminal.  Safe to call twice."""
        self._running = False
        if not self._started:
            return
        self._started = False
        try:
            self.instances.dispose_all()
        finally:
            self.terminal.show_cursor()
            self.terminal.stop()

    def run(self, root_factory: Callable[[], Any] | ComponentDescriptor) -> None:
        """Run the frame loop until a quit key is pressed or :meth:`stop` is called.

        A fatal invariant violation restores the terminal, logs the
        diagnostic and exits the process with it.
        """
        factory = root_factory if callable(root_factory) else (lambda: root_factory)
        render = self.render_patched if self.patch_updates else self.render_once

        self.start()
        self._running = True
        self.scheduler.request()
        try:
            while self._running:
                frame_start = time.monotonic()
                self.process_input()
                if self._running and self.scheduler.take():
                    render(factory())
                elapsed = time.monotonic() - frame_start
                remaining = self.config.frame_interval - elapsed
                if remaining > 0:
                    self._sleep(remaining)
        except InvariantViolation as exc:
            logger.critical("fatal invariant violation: %s", exc.diagnostic())
            self.stop()
            raise SystemExit(f"trellis: {exc.diagnostic()}") from exc
        finally:
            self.stop()


class _FrameGuard:
    """Rejects re-entrant frames."""

    def __init__(self, renderer: Renderer) -> None:
        self._renderer = renderer

    def __enter__(self) -> None:
        if self._renderer._rendering:
            raise ReentrantRenderError("render started while another frame is in progress")
        self._renderer._rendering = True

    def __exit__(self, *exc_info: object) -> None:
        self._renderer._rendering = False


def _resolve_root(root: Any) -> Any:
    if isinstance(root, ComponentDescriptor) or is_node(root):
        return root
    if callable(root):
        return root()
    return root


# ---------------------------------------------------------------------------
# Dirty rectangles
# ---------------------------------------------------------------------------


def subtree_rect(box: LayoutBox) -> Rect:
    """Bounding rectangle of *box* and all its descendants."""
    rect = box.rect
    for child in box.children:
        rect = rect.union(subtree_rect(child))
    return rect


def dirty_rects(old: LayoutBox, new: LayoutBox, patches: list[Patch]) -> list[Rect]:
    """Screen areas that may differ between two laid-out trees.

    Covers the old and new extent of every patched node and of every box
    whose position or size changed.
    """
    rects: list[Rect] = []
    for patch in patches:
        path = touched_path(patch)
        for root in (old, new):
            box = root.find(path)
            if box is not None:
                rects.append(subtree_rect(box))

    old_boxes = {box.path: box for box in old.walk()}
    for box in new.walk():
        before = old_boxes.get(box.path)
        if before is not None and before.rect != box.rect:
            rects.append(subtree_rect(before))
            rects.append(subtree_rect(box))
    return [r for r in rects if not r.empty]


def merge_rects(rects: list[Rect]) -> list[Rect]:
    """Merge overlapping rectangles so no cell is cleared and painted twice."""
    merged: list[Rect] = []
    for rect in rects:
        changed = True
        while changed:
            changed = False
            for i, other in enumerate(merged):
                if rect.intersects(other):
                    rect = rect.union(merged.pop(i))
                    changed = True
                    break
        merged.append(rect)
    return merged


def settle_rects(rects: list[Rect], buffer: TerminalBuffer) -> list[Rect]:
    """Merge *rects*, then widen them so no wide grapheme is cut at an edge.

    Widening can make rectangles overlap again, so the two steps repeat
    until nothing moves.
    """
    merged = merge_rects(rects)
    while True:
        widened = merge_rects(
            [r for r in (buffer.widen_to_graphemes(rect) for rect in merged) if not r.empty]
        )
        if widened == merged:
            return merged
        merged = widened


def run(
    root_factory: Callable[[], Any] | ComponentDescriptor,
    terminal: Terminal | None = None,
    config: RenderConfig | None = None,
    **kwargs: Any,
) -> None:
    """Run *root_factory* full screen on the process terminal until quit."""
    renderer = Renderer(terminal or ProcessTerminal(), config or RenderConfig.from_env(), **kwargs)
    renderer.run(root_factory)
