"""Local terminal handling: raw mode for the duration of a bridge session."""

from keybridge.terminal.mode import TerminalModeError, TerminalModeGuard

__all__ = ["TerminalModeError", "TerminalModeGuard"]
