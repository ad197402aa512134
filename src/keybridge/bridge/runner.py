"""Session wiring for the bridge.

Opens the serial channel, puts the terminal into raw mode, subscribes
the forwarder to key events and runs the read loop on the calling
thread until a read error ends it.
"""

from __future__ import annotations

import logging
import sys
from typing import BinaryIO

from keybridge.bridge.forwarder import EventForwarder
from keybridge.bridge.read_loop import ReadLoop
from keybridge.channel.port import SerialChannel, SerialChannelError
from keybridge.config.settings import Settings
from keybridge.keyboard.base import KeyEventSource, KeyEventSourceError
from keybridge.terminal.mode import TerminalModeError, TerminalModeGuard

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def run_bridge(
    settings: Settings,
    key_source: KeyEventSource | None = None,
    output: BinaryIO | None = None,
    guard: TerminalModeGuard | None = None,
) -> int:
    """Run one bridge session and return the process exit status.

    Args:
        settings: Validated settings; ``settings.serial.port`` must be set.
        key_source: Keyboard hook. Defaults to the pynput listener.
        output: Binary stream receiving serial bytes. Defaults to stdout.
        guard: Terminal guard. Defaults to one over standard input.
    """
    if output is None:
        output = sys.stdout.buffer
    if guard is None:
        guard = TerminalModeGuard(interrupt_exit_code=settings.bridge.interrupt_exit_code)

    try:
        channel = SerialChannel.open(settings.serial)
    except SerialChannelError as e:
        print(f"Failed to open port: {e}", file=sys.stderr)
        return EXIT_FAILURE

    writer = channel.writer(lock_timeout=settings.bridge.write_lock_timeout)
    forwarder = EventForwarder(writer)

    if key_source is None:
        from keybridge.keyboard.pynput_source import PynputKeyEventSource
        key_source = PynputKeyEventSource()

    loop = ReadLoop(channel, output, chunk_size=settings.bridge.read_chunk_size)
    try:
        with guard:
            with key_source.subscribe_key_down(forwarder.key_down), \
                    key_source.subscribe_key_up(forwarder.key_up):
                error = loop.run()
    except (TerminalModeError, KeyEventSourceError) as e:
        print(f"Failed to start: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        key_source.close()
        channel.close()
        if writer.dropped_frames:
            logger.warning("%d key frame(s) could not be written", writer.dropped_frames)

    return EXIT_FAILURE if error is not None else EXIT_OK
