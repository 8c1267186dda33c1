"""Render configuration and logging setup.

``RenderConfig`` is an immutable value passed explicitly to the renderer and
from there to every component through ``RenderContext.config``; there is no
process-wide configuration object.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

from trellis.style import COLOR_MODES, DEFAULT_STYLE, Style, detect_color_mode

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class RenderConfig:
    """Renderer settings."""

    frame_interval: float = 1 / 60
    default_style: Style = DEFAULT_STYLE
    quit_keys: tuple[str, ...] = ("ctrl+c",)
    color_mode: str = "truecolor"
    show_cursor: bool = False
    clear_on_start: bool = True
    log_file: str | None = None
    log_level: str = "WARNING"
    theme: Mapping[str, Style] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.color_mode not in COLOR_MODES:
            raise ValueError(
                f"color_mode must be one of {', '.join(COLOR_MODES)}, got {self.color_mode!r}"
            )
        if self.frame_interval < 0:
            raise ValueError("frame_interval must not be negative")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, **overrides: object) -> RenderConfig:
        """Build a config from ``TRELLIS_*`` environment variables.

        ``TRELLIS_FPS`` sets the frame cap, ``TRELLIS_COLOR_MODE`` the colour
        depth (detected from ``COLORTERM``/``TERM`` when unset),
        ``TRELLIS_LOG_FILE``/``TRELLIS_LOG_LEVEL`` the diagnostics and
        ``TRELLIS_HARDWARE_CURSOR=1`` keeps the terminal cursor visible.
        Keyword *overrides* win over the environment.
        """
        env = os.environ if env is None else env
        values: dict[str, object] = {}

        fps = env.get("TRELLIS_FPS")
        if fps:
            try:
                rate = float(fps)
            except ValueError:
                raise ValueError(f"TRELLIS_FPS must be a number, got {fps!r}") from None
            values["frame_interval"] = 0.0 if rate <= 0 else 1 / rate

        values["color_mode"] = env.get("TRELLIS_COLOR_MODE") or detect_color_mode(env)

        if env.get("TRELLIS_LOG_FILE"):
            values["log_file"] = env["TRELLIS_LOG_FILE"]
        if env.get("TRELLIS_LOG_LEVEL"):
            values["log_level"] = env["TRELLIS_LOG_LEVEL"].upper()
        if env.get("TRELLIS_HARDWARE_CURSOR") == "1":
            values["show_cursor"] = True

        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


def configure_logging(config: RenderConfig) -> logging.Handler | None:
    """Send ``trellis`` logs to ``config.log_file``.

    The terminal belongs to the renderer, so nothing is logged to a stream
    handler.  Without a log file this only sets the level.  Returns the
    installed handler, if any.
    """
    root = logging.getLogger("trellis")
    root.setLevel(getattr(logging, config.log_level.upper(), logging.WARNING))
    if not config.log_file:
        return None

    for existing in root.handlers:
        if isinstance(existing, logging.FileHandler) and existing.baseFilename == os.path.abspath(config.log_file):
            return existing

    handler = logging.FileHandler(config.log_file)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(handler)
    return handler
