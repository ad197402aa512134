"""Abstract base class for global key-event sources.

A source invokes registered callbacks once per key-down and once per
key-up, on a thread of its own. Callbacks receive the integer key code.
"""

from __future__ import annotations

import logging
import threading
import weakref
from abc import ABC, abstractmethod
from typing import Callable

from keybridge.domain.models import KeyDirection

logger = logging.getLogger(__name__)

KeyCallback = Callable[[int], object]


class KeyEventSourceError(Exception):
    """Raised when the keyboard hook cannot be started."""

    def __init__(self, message: str, backend: str = "") -> None:
        super().__init__(message)
        self.backend = backend


class Registration:
    """Keeps one callback subscribed until closed.

    Closing is idempotent. If the registration is garbage-collected while
    still active, the callback is unsubscribed as well.
    """

    def __init__(self, source: KeyEventSource, direction: KeyDirection, token: int) -> None:
        self.direction = direction
        self._finalizer = weakref.finalize(self, source._unsubscribe, direction, token)

    @property
    def active(self) -> bool:
        return self._finalizer.alive

    def close(self) -> None:
        """Stop delivering events to the callback."""
        self._finalizer()

    def __enter__(self) -> Registration:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()


class KeyEventSource(ABC):
    """Abstract interface for a process-wide keyboard hook.

    Subclasses implement ``_start`` and ``_stop``; the base class keeps
    the callback tables and dispatches events. The hook is started when
    the first callback is subscribed and stopped when the last one goes
    away.

    Example usage::

        source = PynputKeyEventSource()
        with source.subscribe_key_down(on_down), source.subscribe_key_up(on_up):
            run_forever()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callbacks: dict[KeyDirection, dict[int, KeyCallback]] = {
            KeyDirection.DOWN: {},
            KeyDirection.UP: {},
        }
        self._next_token = 0
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe_key_down(self, callback: KeyCallback) -> Registration:
        """Call ``callback(key_code)`` on every key press."""
        return self._subscribe(KeyDirection.DOWN, callback)

    def subscribe_key_up(self, callback: KeyCallback) -> Registration:
        """Call ``callback(key_code)`` on every key release."""
        return self._subscribe(KeyDirection.UP, callback)

    def close(self) -> None:
        """Drop every callback and stop the hook."""
        with self._lock:
            for table in self._callbacks.values():
                table.clear()
            self._stop_if_idle()

    def _subscribe(self, direction: KeyDirection, callback: KeyCallback) -> Registration:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._callbacks[direction][token] = callback
            if not self._running:
                self._start()
                self._running = True
        logger.debug("Subscribed key-%s callback #%d", direction.name.lower(), token)
        return Registration(self, direction, token)

    def _unsubscribe(self, direction: KeyDirection, token: int) -> None:
        with self._lock:
            self._callbacks[direction].pop(token, None)
            self._stop_if_idle()
        logger.debug("Unsubscribed key-%s callback #%d", direction.name.lower(), token)

    def _stop_if_idle(self) -> None:
        if self._running and not any(self._callbacks.values()):
            self._running = False
            self._stop()

    def dispatch(self, direction: KeyDirection, key_code: int) -> None:
        """Deliver one key transition to every callback for ``direction``.

        Called from the hook thread. A failing callback is logged and does
        not prevent delivery to the others.
        """
        with self._lock:
            callbacks = list(self._callbacks[direction].values())
        for callback in callbacks:
            try:
                callback(key_code)
            except Exception:
                logger.exception("Key-%s callback failed", direction.name.lower())

    @abstractmethod
    def _start(self) -> None:
        """Start the underlying hook. Called with the lock held."""
        ...

    @abstractmethod
    def _stop(self) -> None:
        """Stop the underlying hook. Called with the lock held."""
        ...
