"""Tests for trellis.zindex."""

from __future__ import annotations

import pytest

from trellis.errors import ZIndexUnderflow
from trellis.zindex import ZIndexContext


class TestZIndexContext:
    def test_nested_levels_accumulate(self) -> None:
        ctx = ZIndexContext()
        assert ctx.enter(2) == 2
        assert ctx.enter(3) == 5
        assert ctx.exit() == 2
        assert ctx.exit() == 0
        assert ctx.depth == 0

    def test_exit_without_enter_raises(self) -> None:
        with pytest.raises(ZIndexUnderflow):
            ZIndexContext().exit()

    def test_layer_restores_on_error(self) -> None:
        ctx = ZIndexContext(base=1)
        with pytest.raises(RuntimeError):
            with ctx.layer(4) as level:
                assert level == 5
                raise RuntimeError("boom")
        assert ctx.current == 1
