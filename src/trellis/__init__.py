"""trellis: declarative terminal UI with constraint layout and double-buffered rendering."""

# Renderer and frame loop
from trellis.app import Renderer, RenderScheduler, dirty_rects, merge_rects, run, settle_rects

# Two-way bindings
from trellis.binding import Binding

# Cell buffers
from trellis.buffer import BLANK, Cell, CellDelta, Grid, Rect, TerminalBuffer

# Configuration
from trellis.config import RenderConfig, configure_logging

# Diff/patch engine
from trellis.diff import apply_patches, diff, is_same_kind

# Errors
from trellis.errors import (
    BuilderFinalizedError,
    FrameStateError,
    HookCountMismatch,
    HookTypeMismatch,
    InvariantViolation,
    ReentrantRenderError,
    TrellisError,
    ZIndexUnderflow,
)

# Focus and input routing
from trellis.events import FOCUS_NEXT, FOCUS_PREVIOUS, EventRouter, FocusManager

# Hooks
from trellis.hooks import HookContext, Ref, StateHook, deps_changed

# Component instances
from trellis.instances import (
    ComponentDescriptor,
    ComponentInstance,
    FocusHandle,
    Reconciler,
    RenderContext,
    ViewInstanceManager,
    component,
)

# Input decoding
from trellis.keys import (
    InputDecoder,
    KeyEvent,
    MouseEvent,
    PasteEvent,
    parse_input,
    parse_key,
)

# Layout
from trellis.layout import (
    Insets,
    LayoutBox,
    LayoutConstraints,
    Length,
    Spacing,
    calculate_layout,
    resolve_absolute,
)

# Node model
from trellis.nodes import (
    ElementBuilder,
    ElementNode,
    FragmentNode,
    TextNode,
    fragment,
    h,
    text,
)

# Painting
from trellis.painter import Painter, PaintResult, paint_to_lines

# Patches
from trellis.patches import (
    InsertChild,
    MoveChild,
    RemoveChild,
    ReplaceNode,
    ReplaceText,
    UpdateAttributes,
)

# Screen
from trellis.screen import FramePhase, Screen

# Styles
from trellis.style import DEFAULT_STYLE, Color, Modifier, Style

# Terminal
from trellis.terminal import ProcessTerminal, Terminal

# Text measurement
from trellis.utils import visible_width

# Z-order
from trellis.zindex import ZIndexContext


__all__ = [
    "BLANK",
    "DEFAULT_STYLE",
    "FOCUS_NEXT",
    "FOCUS_PREVIOUS",
    "Binding",
    "BuilderFinalizedError",
    "Cell",
    "CellDelta",
    "Color",
    "ComponentDescriptor",
    "ComponentInstance",
    "ElementBuilder",
    "ElementNode",
    "EventRouter",
    "FocusHandle",
    "FocusManager",
    "FragmentNode",
    "FramePhase",
    "FrameStateError",
    "Grid",
    "HookContext",
    "HookCountMismatch",
    "HookTypeMismatch",
    "InputDecoder",
    "InsertChild",
    "Insets",
    "InvariantViolation",
    "KeyEvent",
    "LayoutBox",
    "LayoutConstraints",
    "Length",
    "Modifier",
    "MouseEvent",
    "MoveChild",
    "PaintResult",
    "Painter",
    "PasteEvent",
    "ProcessTerminal",
    "Reconciler",
    "Rect",
    "ReentrantRenderError",
    "Ref",
    "RemoveChild",
    "RenderConfig",
    "RenderContext",
    "RenderScheduler",
    "Renderer",
    "ReplaceNode",
    "ReplaceText",
    "Screen",
    "Spacing",
    "StateHook",
    "Style",
    "Terminal",
    "TerminalBuffer",
    "TextNode",
    "TrellisError",
    "UpdateAttributes",
    "ViewInstanceManager",
    "ZIndexContext",
    "ZIndexUnderflow",
    "apply_patches",
    "calculate_layout",
    "component",
    "configure_logging",
    "deps_changed",
    "diff",
    "dirty_rects",
    "fragment",
    "h",
    "is_same_kind",
    "merge_rects",
    "paint_to_lines",
    "parse_input",
    "parse_key",
    "resolve_absolute",
    "run",
    "settle_rects",
    "text",
    "visible_width",
]
