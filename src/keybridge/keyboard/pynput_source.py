"""Key-event source backed by pynput's global keyboard listener.

pynput runs its listener on a daemon thread and calls ``on_press`` and
``on_release`` there for every key transition, including auto-repeat
presses when the OS reports them. pynput is imported when the listener
starts, since importing it needs a display server on X11 hosts.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from keybridge.domain.models import KeyDirection
from keybridge.keyboard.base import KeyEventSource, KeyEventSourceError

logger = logging.getLogger(__name__)


def key_code(key: Any) -> int | None:
    """Return the platform key code for a pynput key, or None if it has none.

    ``KeyCode`` objects carry ``vk``; ``Key`` enum members wrap a KeyCode
    in ``value``; some char-only KeyCodes have no ``vk`` at all.
    """
    if key is None:
        return None
    vk = getattr(key, "vk", None)
    if vk is None:
        vk = getattr(getattr(key, "value", None), "vk", None)
    if vk is None:
        char = getattr(key, "char", None)
        if char:
            vk = ord(char[0])
    return vk


class PynputKeyEventSource(KeyEventSource):
    """Global keyboard hook using ``pynput.keyboard.Listener``."""

    def __init__(self, listener_factory: Callable[..., Any] | None = None) -> None:
        super().__init__()
        self._listener_factory = listener_factory
        self._listener: Any = None

    def _start(self) -> None:
        factory = self._listener_factory
        if factory is None:
            try:
                from pynput import keyboard
            except ImportError as e:
                raise KeyEventSourceError(
                    f"Keyboard hook unavailable: {e}", backend="pynput"
                ) from e
            factory = keyboard.Listener
        self._listener = factory(on_press=self._on_press, on_release=self._on_release)
        self._listener.start()
        logger.info("Keyboard listener started")

    def _stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
            logger.info("Keyboard listener stopped")

    def _on_press(self, key: Any, injected: bool = False) -> None:
        self._deliver(KeyDirection.DOWN, key)

    def _on_release(self, key: Any, injected: bool = False) -> None:
        self._deliver(KeyDirection.UP, key)

    def _deliver(self, direction: KeyDirection, key: Any) -> None:
        code = key_code(key)
        if code is None:
            logger.debug("Ignoring key without a key code: %r", key)
            return
        self.dispatch(direction, code)
