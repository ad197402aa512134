"""Turns key transitions into wire frames on the serial channel."""

from __future__ import annotations

import logging
from typing import Protocol

from keybridge.domain.models import KeyDirection, KeyEvent, encode_frame

logger = logging.getLogger(__name__)


class FrameWriter(Protocol):
    def write(self, data: bytes) -> bool: ...


class EventForwarder:
    """Writes one frame per key event, best effort.

    ``key_down`` and ``key_up`` are meant to be subscribed directly to a
    KeyEventSource. They run on the hook's thread.
    """

    def __init__(self, writer: FrameWriter) -> None:
        self._writer = writer

    def forward(self, event: KeyEvent) -> bool:
        """Encode ``event`` and write it. Returns False if it was dropped."""
        frame = encode_frame(event)
        try:
            sent = self._writer.write(frame)
        except Exception as e:
            logger.debug("Dropped frame %s: %s", frame.hex(" "), e)
            return False
        if sent:
            logger.debug("Sent frame %s", frame.hex(" "))
        return sent

    def key_down(self, key_code: int) -> None:
        self.forward(KeyEvent(key_code=key_code, direction=KeyDirection.DOWN))

    def key_up(self, key_code: int) -> None:
        self.forward(KeyEvent(key_code=key_code, direction=KeyDirection.UP))
