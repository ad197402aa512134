"""Raw-mode guard for the controlling terminal.

Clears canonical line buffering and local echo on standard input, and
puts the original settings back on every way out of the session: the
normal end of the ``with`` block, an exception propagating through it,
or an interrupt signal. The signal path restores the terminal and then
ends the process at once with ``os._exit``.

On platforms without termios, or when standard input is not a terminal,
the guard does nothing and the bridge runs as a plain relay.
"""

from __future__ import annotations

import logging
import os
import signal
import sys
from types import FrameType
from typing import Any, Callable, Iterable

from keybridge.domain.models import TerminalState

if os.name != "nt":
    import termios
else:
    termios = None

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class TerminalModeError(Exception):
    """Raised when the terminal settings cannot be read or changed."""


class TerminalModeGuard:
    """Puts a terminal into raw mode and guarantees it is restored.

    Usage::

        with TerminalModeGuard():
            run_read_loop()
    """

    def __init__(
        self,
        fd: int | None = None,
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
        interrupt_exit_code: int = 0,
        exit_func: Callable[[int], Any] = os._exit,
    ) -> None:
        self._fd = fd
        self._signals = tuple(signals)
        self._interrupt_exit_code = interrupt_exit_code
        self._exit = exit_func
        self._original: TerminalState | None = None
        self._previous_handlers: dict[int, Any] = {}

    @property
    def original(self) -> TerminalState | None:
        """Settings captured by enable(), or None in pass-through mode."""
        return self._original

    @property
    def is_raw(self) -> bool:
        return self._original is not None

    def _resolve_fd(self) -> int | None:
        if self._fd is not None:
            return self._fd
        try:
            return sys.stdin.fileno()
        except (AttributeError, ValueError, OSError):
            return None

    def enable(self) -> TerminalState | None:
        """Capture the current settings and switch to raw mode.

        Returns:
            The captured settings, or None when there is no terminal to
            adjust.

        Raises:
            TerminalModeError: If querying or applying settings fails.
        """
        if termios is None:
            logger.info("No termios on this platform; local echo stays on")
            return None
        fd = self._resolve_fd()
        if fd is None or not os.isatty(fd):
            logger.info("Standard input is not a terminal; local echo stays on")
            return None

        try:
            attributes = termios.tcgetattr(fd)
        except termios.error as e:
            raise TerminalModeError(f"Cannot read terminal settings: {e}") from e
        original = TerminalState(fd=fd, attributes=attributes)

        raw = termios.tcgetattr(fd)
        raw[3] &= ~(termios.ICANON | termios.ECHO)
        try:
            termios.tcsetattr(fd, termios.TCSANOW, raw)
        except termios.error as e:
            raise TerminalModeError(f"Cannot switch terminal to raw mode: {e}") from e

        self._original = original
        self._install_handlers()
        logger.debug("Terminal on fd %d switched to raw mode", fd)
        return original

    def restore(self, original: TerminalState | None = None) -> None:
        """Reapply captured settings. Calling it again is harmless."""
        state = original if original is not None else self._original
        self._uninstall_handlers()
        if state is None or termios is None:
            return
        try:
            termios.tcsetattr(state.fd, termios.TCSANOW, state.attributes)
        except (termios.error, OSError) as e:
            logger.warning("Could not restore terminal settings: %s", e)
            return
        logger.debug("Terminal on fd %d restored", state.fd)

    def _install_handlers(self) -> None:
        for signum in self._signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_interrupt)

    def _uninstall_handlers(self) -> None:
        while self._previous_handlers:
            signum, handler = self._previous_handlers.popitem()
            signal.signal(signum, handler)

    def _handle_interrupt(self, signum: int, frame: FrameType | None) -> None:
        self.restore()
        try:
            sys.stdout.flush()
        except (OSError, ValueError):
            pass
        self._exit(self._interrupt_exit_code)

    def __enter__(self) -> TerminalModeGuard:
        self.enable()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.restore()
