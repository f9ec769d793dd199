"""
Serial port transport for ProtoCom devices.

Implements TransportInterface using pyserial. One write is always followed
by one line read before the next frame goes out; there is no pipelining.
"""

import logging
import threading
from typing import Optional

import serial

from protocom.protocol.interface import TransportInterface
from protocom.config.models import SerialConfig
from protocom.utils.exceptions import (
    NotConnectedError,
    PortNotFoundError,
    PortInUseError,
    TransportError,
    TransportTimeoutError,
)


logger = logging.getLogger(__name__)

# Substrings of OS error texts meaning another process holds the port
_IN_USE_HINTS = ("access", "permission", "in use", "busy")


def _open_error(port_name: str, error: serial.SerialException) -> TransportError:
    text = str(error).lower()
    if any(hint in text for hint in _IN_USE_HINTS):
        return PortInUseError(f"{port_name} is already in use by another application")
    return PortNotFoundError(f"Failed to open {port_name}: {error}")


class SerialTransport(TransportInterface):
    """
    pyserial-backed transport, 8N1 framing.

    Reads are bounded by ``SerialConfig.timeout_seconds``; a response line
    that does not complete in time raises TransportTimeoutError.
    """

    def __init__(self, config: SerialConfig):
        self._config = config
        self._port: Optional[serial.Serial] = None
        self._io_lock = threading.Lock()

    def open(self) -> None:
        """Open the configured port and discard anything already buffered."""
        if self.is_open():
            logger.warning(f"{self._config.port} already open")
            return

        if not self._config.port:
            raise PortNotFoundError("No serial port configured")

        logger.info(f"Opening {self._config.port} at {self._config.baud} baud")
        try:
            port = serial.Serial(
                port=self._config.port,
                baudrate=self._config.baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._config.timeout_seconds,
                write_timeout=self._config.write_timeout_seconds,
            )
        except serial.SerialException as e:
            raise _open_error(self._config.port, e) from e

        port.reset_input_buffer()
        port.reset_output_buffer()
        self._port = port

    def close(self) -> None:
        """Close serial port."""
        if self._port and self._port.is_open:
            self._port.close()
            logger.info("Serial port closed")
        self._port = None

    def is_open(self) -> bool:
        return self._port is not None and self._port.is_open

    def write(self, data: bytes) -> None:
        with self._io_lock:
            if not self.is_open():
                raise NotConnectedError("Serial port not open")

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"TX: {' '.join(f'{b:02X}' for b in data)}")

            try:
                self._port.write(data)
                self._port.flush()
            except serial.SerialTimeoutException as e:
                raise TransportTimeoutError(f"Write timed out after {self._config.write_timeout_seconds}s") from e
            except serial.SerialException as e:
                raise TransportError(f"Write failed: {e}") from e

    def read_until(self, terminator: bytes = b"\n") -> bytes:
        with self._io_lock:
            if not self.is_open():
                raise NotConnectedError("Serial port not open")

            try:
                data = self._port.read_until(terminator)
            except serial.SerialException as e:
                raise TransportError(f"Read failed: {e}") from e

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"RX: {' '.join(f'{b:02X}' for b in data)}")

            if not data.endswith(terminator):
                raise TransportTimeoutError(
                    f"No complete response within {self._config.timeout_seconds}s "
                    f"(received {len(data)} bytes)"
                )

            return bytes(data)
