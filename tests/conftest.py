"""Shared test fixtures for the keybridge test suite.

Provides stand-ins for the two OS collaborators: a fake pyserial port
and a key-event source that injects synthetic key transitions.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Iterable, Union

import pytest
import serial

from keybridge.config.settings import SerialConfig, Settings
from keybridge.domain.models import KeyDirection
from keybridge.keyboard.base import KeyEventSource

Arrival = Union[bytes, Callable[[], None]]


# ---------------------------------------------------------------------------
# Serial fakes
# ---------------------------------------------------------------------------


class FakeSerial:
    """Minimal ``serial.Serial`` stand-in.

    ``arrivals`` is consumed one item per empty-buffer read: bytes become
    readable data, a callable is invoked and the read times out. Once the
    script is exhausted, reads raise SerialException like a device that
    went away.
    """

    def __init__(self, arrivals: Iterable[Arrival] = (), byte_delay: float = 0.0, **kwargs) -> None:
        self.kwargs = kwargs
        self.is_open = True
        self.written = bytearray()
        self.write_calls: list[bytes] = []
        self._arrivals: deque[Arrival] = deque(arrivals)
        self._buffer = b""
        self._byte_delay = byte_delay
        self._write_guard = threading.Lock()

    @property
    def in_waiting(self) -> int:
        return len(self._buffer)

    def read(self, size: int = 1) -> bytes:
        if not self._buffer:
            if not self._arrivals:
                raise serial.SerialException("device reports readiness to read but returned no data")
            item = self._arrivals.popleft()
            if callable(item):
                item()
                return b""
            self._buffer = item
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def write(self, data: bytes) -> int:
        self.write_calls.append(bytes(data))
        for byte in data:
            with self._write_guard:
                self.written.append(byte)
            if self._byte_delay:
                threading.Event().wait(self._byte_delay)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.is_open = False


class InjectedKeyEventSource(KeyEventSource):
    """KeyEventSource whose key transitions are injected by the test."""

    def __init__(self) -> None:
        super().__init__()
        self.starts = 0
        self.stops = 0

    def _start(self) -> None:
        self.starts += 1

    def _stop(self) -> None:
        self.stops += 1

    def press(self, key_code: int) -> None:
        self.dispatch(KeyDirection.DOWN, key_code)

    def release(self, key_code: int) -> None:
        self.dispatch(KeyDirection.UP, key_code)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_serial_factory() -> type[FakeSerial]:
    return FakeSerial


@pytest.fixture
def key_source() -> InjectedKeyEventSource:
    return InjectedKeyEventSource()


@pytest.fixture
def serial_config() -> SerialConfig:
    return SerialConfig(port="/dev/ttyTEST0", baudrate=9600)


@pytest.fixture
def settings(serial_config: SerialConfig) -> Settings:
    return Settings(serial=serial_config)
