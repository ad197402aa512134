"""Global key-event capture for keybridge.

Key transitions are delivered through a pluggable source. The abstract
interface lets the bridge run against the real OS hook (pynput) or a
source that injects synthetic events.

Public API:
    KeyEventSource -- Abstract base class
    Registration -- Handle that keeps a callback subscribed
    PynputKeyEventSource -- Backend using pynput's global listener
"""

from keybridge.keyboard.base import (
    KeyCallback,
    KeyEventSource,
    KeyEventSourceError,
    Registration,
)

__all__ = [
    "KeyCallback",
    "KeyEventSource",
    "KeyEventSourceError",
    "Registration",
    "PynputKeyEventSource",
]


def __getattr__(name: str) -> type:
    """Lazy import for the pynput backend, which needs a display on some hosts."""
    if name == "PynputKeyEventSource":
        from keybridge.keyboard.pynput_source import PynputKeyEventSource
        return PynputKeyEventSource
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
