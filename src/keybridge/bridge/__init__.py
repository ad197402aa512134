"""The duplex bridge: key events out, serial bytes in.

Public API:
    EventForwarder -- Encodes key events and writes them to the channel
    ReadLoop -- Relays serial bytes to standard output
    run_bridge -- Wires the channel, terminal guard and key source together
"""

from keybridge.bridge.forwarder import EventForwarder
from keybridge.bridge.read_loop import LoopState, ReadLoop
from keybridge.bridge.runner import run_bridge

__all__ = ["EventForwarder", "LoopState", "ReadLoop", "run_bridge"]
