"""Tests for the raw-mode terminal guard, using a pseudo-terminal."""

from __future__ import annotations

import os
import signal
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest

pytestmark = pytest.mark.skipif(os.name == "nt", reason="requires termios")

if os.name != "nt":
    import pty
    import termios

from keybridge.terminal.mode import TerminalModeError, TerminalModeGuard


@pytest.fixture
def tty_fd() -> Iterator[int]:
    master, slave = pty.openpty()
    try:
        yield slave
    finally:
        os.close(slave)
        os.close(master)


@pytest.fixture
def exit_func() -> MagicMock:
    return MagicMock()


def _lflag(fd: int) -> int:
    return termios.tcgetattr(fd)[3]


class TestTerminalModeGuardEnable:
    def test_enable_clears_icanon_and_echo(self, tty_fd: int) -> None:
        guard = TerminalModeGuard(fd=tty_fd, signals=())
        state = guard.enable()
        assert state is not None
        assert guard.is_raw
        assert _lflag(tty_fd) & (termios.ICANON | termios.ECHO) == 0
        assert state.attributes[3] & termios.ECHO
        guard.restore()

    def test_enable_keeps_other_flags(self, tty_fd: int) -> None:
        before = termios.tcgetattr(tty_fd)
        guard = TerminalModeGuard(fd=tty_fd, signals=())
        guard.enable()
        after = termios.tcgetattr(tty_fd)
        assert after[0] == before[0]
        assert after[1] == before[1]
        assert _lflag(tty_fd) & termios.ISIG == before[3] & termios.ISIG
        guard.restore()

    def test_not_a_tty_is_pass_through(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            guard = TerminalModeGuard(fd=read_fd, signals=(signal.SIGUSR1,))
            assert guard.enable() is None
            assert not guard.is_raw
            assert signal.getsignal(signal.SIGUSR1) is not guard._handle_interrupt
            guard.restore()
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_query_failure_is_fatal(self, tty_fd: int) -> None:
        guard = TerminalModeGuard(fd=tty_fd, signals=())
        with patch("termios.tcgetattr", side_effect=termios.error(5, "Input/output error")):
            with pytest.raises(TerminalModeError, match="Cannot read terminal settings"):
                guard.enable()
        assert not guard.is_raw

    def test_set_failure_is_fatal(self, tty_fd: int) -> None:
        guard = TerminalModeGuard(fd=tty_fd, signals=())
        with patch("termios.tcsetattr", side_effect=termios.error(5, "Input/output error")):
            with pytest.raises(TerminalModeError, match="raw mode"):
                guard.enable()


class TestTerminalModeGuardRestore:
    def test_restore_reapplies_original(self, tty_fd: int) -> None:
        before = termios.tcgetattr(tty_fd)
        guard = TerminalModeGuard(fd=tty_fd, signals=())
        guard.enable()
        guard.restore()
        assert termios.tcgetattr(tty_fd) == before

    def test_restore_twice_is_harmless(self, tty_fd: int) -> None:
        before = termios.tcgetattr(tty_fd)
        guard = TerminalModeGuard(fd=tty_fd, signals=())
        original = guard.enable()
        guard.restore(original)
        once = termios.tcgetattr(tty_fd)
        guard.restore(original)
        assert termios.tcgetattr(tty_fd) == once == before

    def test_restore_without_enable(self, tty_fd: int) -> None:
        before = termios.tcgetattr(tty_fd)
        TerminalModeGuard(fd=tty_fd, signals=()).restore()
        assert termios.tcgetattr(tty_fd) == before

    def test_restore_after_fd_closed_does_not_raise(self) -> None:
        master, slave = pty.openpty()
        guard = TerminalModeGuard(fd=slave, signals=())
        guard.enable()
        os.close(slave)
        os.close(master)
        guard.restore()

    def test_context_manager_restores_on_exception(self, tty_fd: int) -> None:
        before = termios.tcgetattr(tty_fd)
        with pytest.raises(RuntimeError):
            with TerminalModeGuard(fd=tty_fd, signals=()):
                assert _lflag(tty_fd) & termios.ECHO == 0
                raise RuntimeError("read loop crashed")
        assert termios.tcgetattr(tty_fd) == before


class TestTerminalModeGuardSignals:
    def test_interrupt_restores_and_exits(self, tty_fd: int, exit_func: MagicMock) -> None:
        before = termios.tcgetattr(tty_fd)
        previous = signal.getsignal(signal.SIGUSR1)
        guard = TerminalModeGuard(
            fd=tty_fd, signals=(signal.SIGUSR1,), interrupt_exit_code=0, exit_func=exit_func
        )
        guard.enable()
        assert signal.getsignal(signal.SIGUSR1) == guard._handle_interrupt

        signal.raise_signal(signal.SIGUSR1)

        exit_func.assert_called_once_with(0)
        assert termios.tcgetattr(tty_fd) == before
        assert signal.getsignal(signal.SIGUSR1) == previous

    def test_custom_exit_code(self, tty_fd: int, exit_func: MagicMock) -> None:
        guard = TerminalModeGuard(
            fd=tty_fd, signals=(signal.SIGUSR1,), interrupt_exit_code=130, exit_func=exit_func
        )
        guard.enable()
        guard._handle_interrupt(signal.SIGUSR1, None)
        exit_func.assert_called_once_with(130)

    def test_restore_reinstates_previous_handler(self, tty_fd: int) -> None:
        previous = signal.getsignal(signal.SIGUSR1)
        guard = TerminalModeGuard(fd=tty_fd, signals=(signal.SIGUSR1,))
        guard.enable()
        guard.restore()
        assert signal.getsignal(signal.SIGUSR1) == previous
