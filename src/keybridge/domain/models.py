"""Core domain models for keybridge.

Key transitions captured from the local keyboard, their 3-byte wire
frame, and the captured terminal settings restored on exit.

Wire frame (one per key transition)::

    [0x55, direction, key_code]

- Byte 0: marker, always 0x55. Not escaped, so it may also appear in the
  other two bytes; receivers synchronize on their own.
- Byte 1: 1 for key-down, 0 for key-up
- Byte 2: key code truncated to its low 8 bits
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

FRAME_MARKER: int = 0x55
FRAME_SIZE: int = 3


class FrameError(ValueError):
    """Raised when bytes cannot be decoded as a key-event frame."""


# ---------------------------------------------------------------------------
# Key events
# ---------------------------------------------------------------------------


class KeyDirection(int, enum.Enum):
    """Direction of a key transition. The value is the wire byte."""

    UP = 0
    DOWN = 1


class KeyEvent(BaseModel):
    """A single key transition reported by the keyboard hook."""

    model_config = ConfigDict(frozen=True)

    key_code: int = Field(ge=0, description="Platform key identifier")
    direction: KeyDirection = Field(description="Key-down or key-up")


def encode_frame(event: KeyEvent) -> bytes:
    """Build the 3-byte wire frame for a key event."""
    return bytes([FRAME_MARKER, event.direction.value, event.key_code & 0xFF])


def decode_frame(data: bytes) -> KeyEvent:
    """Parse a 3-byte wire frame back into a KeyEvent.

    Raises:
        FrameError: On a wrong length, marker or direction byte.
    """
    if len(data) != FRAME_SIZE:
        raise FrameError(f"Frame must be {FRAME_SIZE} bytes, got {len(data)}")
    marker, direction, key_code = data
    if marker != FRAME_MARKER:
        raise FrameError(f"Bad frame marker 0x{marker:02X}")
    try:
        key_direction = KeyDirection(direction)
    except ValueError as e:
        raise FrameError(f"Bad direction byte 0x{direction:02X}") from e
    return KeyEvent(key_code=key_code, direction=key_direction)


# ---------------------------------------------------------------------------
# Terminal state
# ---------------------------------------------------------------------------


class TerminalState(BaseModel):
    """Line-discipline settings of a terminal, as returned by tcgetattr."""

    model_config = ConfigDict(frozen=True)

    fd: int = Field(ge=0, description="File descriptor the settings belong to")
    attributes: list[Any] = Field(description="termios attribute list")
