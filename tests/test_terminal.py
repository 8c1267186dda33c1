"""Tests for trellis.terminal -- escape helpers and the process terminal's output path."""

from __future__ import annotations

from trellis.terminal import ProcessTerminal, move_to_sequence

from .virtual_terminal import VirtualTerminal


class TestMoveTo:
    def test_one_based_row_then_column(self) -> None:
        assert move_to_sequence(0, 0) == "\x1b[1;1H"
        assert move_to_sequence(7, 2) == "\x1b[3;8H"


class TestProcessTerminalWrite:
    def test_write_goes_to_stdout(self, capsys, monkeypatch) -> None:
        monkeypatch.delenv("TRELLIS_WRITE_LOG", raising=False)
        ProcessTerminal().write("hello")
        assert capsys.readouterr().out == "hello"

    def test_write_log(self, capsys, monkeypatch, tmp_path) -> None:
        log = tmp_path / "writes.log"
        monkeypatch.setenv("TRELLIS_WRITE_LOG", str(log))
        terminal = ProcessTerminal()
        terminal.write("\x1b[1;1Ha")
        terminal.write("b")
        assert log.read_text() == "\x1b[1;1Hab"
        capsys.readouterr()

    def test_size_falls_back_without_tty(self, capsys) -> None:
        terminal = ProcessTerminal()
        assert terminal.columns > 0
        assert terminal.rows > 0


class TestVirtualTerminal:
    """The in-memory terminal used throughout the tests."""

    def test_interprets_moves_and_text(self) -> None:
        terminal = VirtualTerminal(rows=2, columns=6)
        terminal.write("\x1b[2;3H\x1b[0;1mhi\x1b[0m")
        assert terminal.screen_lines() == ["", "  hi"]

    def test_clear_screen(self) -> None:
        terminal = VirtualTerminal(rows=1, columns=4)
        terminal.write("abcd")
        terminal.clear_screen()
        assert terminal.screen_lines() == [""]

    def test_simulated_input_reaches_handler(self) -> None:
        terminal = VirtualTerminal()
        received: list[str] = []
        terminal.start(received.append, lambda: None)
        terminal.simulate_input("x")
        assert received == ["x"]
