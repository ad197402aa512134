"""Serial channel shared by the read loop and the key-event callbacks.

Public API:
    SerialChannel -- Open serial device with a blocking, time-limited read
    SharedWriter -- Lock-guarded write handle for concurrent writers
"""

from keybridge.channel.port import (
    SerialChannel,
    SerialChannelError,
    SharedWriter,
)

__all__ = ["SerialChannel", "SerialChannelError", "SharedWriter"]
