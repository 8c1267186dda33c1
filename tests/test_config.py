"""Tests for trellis.config -- environment parsing and logging setup."""

from __future__ import annotations

import logging

import pytest

from trellis.config import RenderConfig, configure_logging


class TestRenderConfig:
    def test_defaults(self) -> None:
        config = RenderConfig()
        assert config.frame_interval == pytest.approx(1 / 60)
        assert config.quit_keys == ("ctrl+c",)
        assert config.color_mode == "truecolor"
        assert not config.show_cursor

    def test_invalid_color_mode(self) -> None:
        with pytest.raises(ValueError):
            RenderConfig(color_mode="8")

    def test_negative_frame_interval(self) -> None:
        with pytest.raises(ValueError):
            RenderConfig(frame_interval=-1)


class TestFromEnv:
    def test_reads_trellis_variables(self) -> None:
        env = {
            "TRELLIS_FPS": "30",
            "TRELLIS_COLOR_MODE": "256",
            "TRELLIS_LOG_LEVEL": "debug",
            "TRELLIS_LOG_FILE": "/tmp/trellis.log",
            "TRELLIS_HARDWARE_CURSOR": "1",
        }
        config = RenderConfig.from_env(env)
        assert config.frame_interval == pytest.approx(1 / 30)
        assert config.color_mode == "256"
        assert config.log_level == "DEBUG"
        assert config.log_file == "/tmp/trellis.log"
        assert config.show_cursor

    def test_zero_fps_disables_cap(self) -> None:
        assert RenderConfig.from_env({"TRELLIS_FPS": "0"}).frame_interval == 0.0

    def test_bad_fps(self) -> None:
        with pytest.raises(ValueError):
            RenderConfig.from_env({"TRELLIS_FPS": "fast"})

    def test_color_mode_detected_when_unset(self) -> None:
        assert RenderConfig.from_env({"TERM": "xterm-256color"}).color_mode == "256"

    def test_overrides_win(self) -> None:
        config = RenderConfig.from_env({"TRELLIS_COLOR_MODE": "256"}, color_mode="16")
        assert config.color_mode == "16"


class TestConfigureLogging:
    def test_without_file_only_sets_level(self) -> None:
        assert configure_logging(RenderConfig(log_level="INFO")) is None
        assert logging.getLogger("trellis").level == logging.INFO

    def test_file_handler_is_installed_once(self, tmp_path) -> None:
        path = tmp_path / "trellis.log"
        config = RenderConfig(log_file=str(path), log_level="DEBUG")
        logger = logging.getLogger("trellis")
        try:
            first = configure_logging(config)
            second = configure_logging(config)
            assert first is second
            logging.getLogger("trellis.app").debug("hello from test")
            first.flush()
            text = path.read_text()
            assert "[DEBUG] trellis.app: hello from test" in text
        finally:
            for handler in list(logger.handlers):
                if isinstance(handler, logging.FileHandler):
                    logger.removeHandler(handler)
                    handler.close()
            logger.setLevel(logging.NOTSET)
