"""
Abstract interface for the byte-stream transport.

This interface allows transparent substitution between a real serial port and the simulator.
"""

from abc import ABC, abstractmethod


class TransportInterface(ABC):
    """Abstract base class for byte-stream transports."""

    @abstractmethod
    def open(self) -> None:
        """
        Open the underlying stream.

        Raises:
            PortNotFoundError: If the port does not exist.
            PortInUseError: If the port is already open elsewhere.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the underlying stream."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the stream is open.

        Returns:
            True if open, False otherwise.
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Write one complete frame.

        Raises:
            NotConnectedError: If not open.
            TransportError: If the write fails.
        """
        pass

    @abstractmethod
    def read_until(self, terminator: bytes = b"\n") -> bytes:
        """
        Read up to and including the terminator.

        Returns:
            Bytes read; shorter than a full line (possibly empty) when the
            stream ended.

        Raises:
            NotConnectedError: If not open.
            TransportTimeoutError: If the implementation enforces a timeout
                and it expired.
        """
        pass
