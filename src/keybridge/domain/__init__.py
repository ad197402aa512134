"""Domain models for keybridge.

This package contains the core data structures and the wire encoding of
key events. All models use Pydantic v2 for validation.
"""

from keybridge.domain.models import (
    FRAME_MARKER,
    FRAME_SIZE,
    FrameError,
    KeyDirection,
    KeyEvent,
    TerminalState,
    decode_frame,
    encode_frame,
)

__all__ = [
    "FRAME_MARKER",
    "FRAME_SIZE",
    "FrameError",
    "KeyDirection",
    "KeyEvent",
    "TerminalState",
    "decode_frame",
    "encode_frame",
]
