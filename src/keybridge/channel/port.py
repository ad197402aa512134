"""Serial port access via pyserial.

A SerialChannel owns one open ``serial.Serial``. The main thread reads
from it directly; key-event callbacks write through a SharedWriter,
which refers to the same device and serializes writers with a lock so
that frames are never interleaved byte-for-byte.
"""

from __future__ import annotations

import logging
import threading

import serial

from keybridge.config.settings import SerialConfig

logger = logging.getLogger(__name__)

DATA_BITS = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}

PARITY = {
    "none": serial.PARITY_NONE,
    "even": serial.PARITY_EVEN,
    "odd": serial.PARITY_ODD,
}

STOP_BITS = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}


class SerialChannelError(Exception):
    """Raised when opening or reading the serial device fails."""

    def __init__(self, message: str, port: str = "") -> None:
        super().__init__(message)
        self.port = port


class SerialChannel:
    """One open, configured serial device.

    Usage::

        channel = SerialChannel.open(SerialConfig(port="/dev/ttyUSB0"))
        writer = channel.writer()
        data = channel.read(1000)
        writer.write(b"\\x55\\x01\\x1e")
        channel.close()
    """

    def __init__(self, port: serial.Serial, config: SerialConfig) -> None:
        self._port = port
        self._config = config

    @classmethod
    def open(cls, config: SerialConfig) -> SerialChannel:
        """Open and configure the device described by ``config``.

        Raises:
            SerialChannelError: If the device is missing, inaccessible, or
                rejects the parameters. There is no retry.
        """
        if not config.port:
            raise SerialChannelError("No serial port configured")
        try:
            port = serial.Serial(
                port=config.port,
                baudrate=config.baudrate,
                bytesize=DATA_BITS[config.data_bits],
                parity=PARITY[config.parity],
                stopbits=STOP_BITS[config.stop_bits],
                timeout=config.timeout,
                xonxoff=config.flow_control == "software",
                rtscts=config.flow_control == "hardware",
            )
        except (serial.SerialException, OSError, ValueError) as e:
            raise SerialChannelError(
                f"Cannot open serial port {config.port}: {e}", port=config.port
            ) from e
        logger.info(
            "Opened %s at %d baud (%d%s%d, flow control %s)",
            config.port,
            config.baudrate,
            config.data_bits,
            PARITY[config.parity],
            config.stop_bits,
            config.flow_control,
        )
        return cls(port, config)

    @property
    def config(self) -> SerialConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return bool(self._port.is_open)

    def read(self, max_bytes: int = 1000) -> bytes:
        """Read whatever the device has sent, up to ``max_bytes``.

        Blocks up to the configured timeout for the first byte, then takes
        everything already buffered. An empty result means the read timed
        out.

        Raises:
            SerialChannelError: On any failure other than a timeout.
        """
        try:
            data = self._port.read(1)
            if not data:
                return b""
            waiting = min(self._port.in_waiting, max_bytes - 1)
            if waiting > 0:
                data += self._port.read(waiting)
            return data
        except (serial.SerialException, OSError, TypeError) as e:
            # pyserial raises TypeError when the port is closed under a read
            raise SerialChannelError(
                f"Read from {self._config.port} failed: {e}", port=self._config.port or ""
            ) from e

    def writer(self, lock_timeout: float = 0.5) -> SharedWriter:
        """Return a write handle safe to share between threads."""
        return SharedWriter(self._port, lock_timeout=lock_timeout)

    def close(self) -> None:
        """Close the device. Safe to call more than once."""
        if self._port.is_open:
            try:
                self._port.close()
            except (serial.SerialException, OSError) as e:
                logger.warning("Error closing %s: %s", self._config.port, e)
            logger.info("Closed %s", self._config.port)

    def __enter__(self) -> SerialChannel:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()


class SharedWriter:
    """Lock-guarded writer over a serial device.

    Writes are best effort. A write that cannot take the lock within
    ``lock_timeout`` seconds, or that fails at the device, is dropped
    and counted rather than raised.
    """

    def __init__(self, port: serial.Serial, lock_timeout: float = 0.5) -> None:
        self._port = port
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._count_lock = threading.Lock()
        self._dropped = 0

    @property
    def dropped_frames(self) -> int:
        return self._dropped

    def write(self, data: bytes) -> bool:
        """Write ``data`` as one uninterrupted unit. Returns False if dropped."""
        if not self._lock.acquire(timeout=self._lock_timeout):
            self._record_drop("write lock busy")
            return False
        try:
            self._port.write(data)
            self._port.flush()
        except (serial.SerialException, OSError, TypeError) as e:
            self._record_drop(str(e))
            return False
        finally:
            self._lock.release()
        return True

    def _record_drop(self, reason: str) -> None:
        with self._count_lock:
            self._dropped += 1
        logger.debug("Dropped frame: %s", reason)
