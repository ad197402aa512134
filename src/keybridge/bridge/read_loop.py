"""Main-thread loop relaying serial input to standard output.

The loop has two states. It stays RUNNING across successful reads and
timeouts, and moves to STOPPED on the first other read error. It does
not touch the terminal; restoring it is left to the enclosing guard.
"""

from __future__ import annotations

import enum
import logging
from typing import BinaryIO, Protocol

from keybridge.channel.port import SerialChannelError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000


class LoopState(str, enum.Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class ReadableChannel(Protocol):
    def read(self, max_bytes: int = DEFAULT_CHUNK_SIZE) -> bytes: ...


class ReadLoop:
    """Copies every chunk read from ``channel`` to ``output`` unchanged."""

    def __init__(
        self,
        channel: ReadableChannel,
        output: BinaryIO,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._channel = channel
        self._output = output
        self._chunk_size = chunk_size
        self._state = LoopState.STOPPED
        self._bytes_relayed = 0
        self._error: Exception | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def bytes_relayed(self) -> int:
        return self._bytes_relayed

    @property
    def error(self) -> Exception | None:
        """The read error that stopped the loop, if any."""
        return self._error

    def step(self) -> None:
        """Perform one read and relay its result."""
        try:
            data = self._channel.read(self._chunk_size)
        except (SerialChannelError, OSError) as e:
            self._error = e
            self._state = LoopState.STOPPED
            logger.error("Serial read failed: %s", e)
            return
        if not data:
            return
        self._output.write(data)
        self._output.flush()
        self._bytes_relayed += len(data)

    def run(self) -> Exception | None:
        """Relay until a read error occurs. Returns that error."""
        self._state = LoopState.RUNNING
        self._error = None
        while self._state is LoopState.RUNNING:
            self.step()
        logger.debug("Read loop stopped after %d bytes", self._bytes_relayed)
        return self._error
