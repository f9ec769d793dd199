"""
Simulated ProtoCom device.

Answers frames the way a small embedded device would, without requiring
physical hardware.
"""

import logging
import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional

from protocom.protocol.checksum import xor_checksum
from protocom.protocol.encoder import TERMINATOR, decode_response, encode_binary_frame
from protocom.protocol.interface import TransportInterface
from protocom.config.models import SimulatorConfig
from protocom.utils.exceptions import NotConnectedError, TransportTimeoutError


logger = logging.getLogger(__name__)

CONFIRMATION = b"\n"
ACK = b"Y\n"
NAK = b"N\n"


class MockSerialTransport(TransportInterface):
    """
    Mock implementation of the transport for testing without hardware.

    Device commands:
        V, F            firmware version
        S               status
        T text          echo text
        I               reset parameters and checksum state
        G name          read parameter (N if unknown)
        P name=value    store parameter
        D, Z            binary payload, acknowledged with Y
        X               checksum byte, Y if it matches xor(last reply) ^ xor(last payload)
        other           bare confirmation
    """

    def __init__(self, config: Optional[SimulatorConfig] = None):
        """
        Initialize simulator.

        Args:
            config: Simulator configuration.
        """
        self.config = config or SimulatorConfig()
        self._open = False
        self._lock = threading.Lock()

        # Virtual device state
        self._parameters: Dict[str, str] = {}
        self._last_reply = ""
        self._last_payload = b""
        self._pending: Deque[bytes] = deque()
        self._scripted: Deque[bytes] = deque()

        self.received: List[bytes] = []

        logger.info("MockSerialTransport initialized")

    @property
    def parameters(self) -> Dict[str, str]:
        return dict(self._parameters)

    def queue_response(self, response: bytes) -> None:
        """Force the reply to the next frame (a newline is added if missing)."""
        if not response.endswith(TERMINATOR):
            response += TERMINATOR
        self._scripted.append(response)

    def open(self) -> None:
        with self._lock:
            if self._open:
                logger.warning("Already open")
                return

            if self.config.response_latency_ms > 0:
                time.sleep(self.config.response_latency_ms / 1000.0)

            self._open = True
            logger.info("Simulator opened (firmware version: %s)", self.config.firmware_version)

    def close(self) -> None:
        with self._lock:
            if not self._open:
                return
            self._open = False
            self._pending.clear()
            logger.info("Simulator closed")

    def is_open(self) -> bool:
        return self._open

    def write(self, data: bytes) -> None:
        if not self._open:
            raise NotConnectedError("Simulator not open")

        with self._lock:
            self.received.append(bytes(data))
            if self._scripted:
                reply = self._scripted.popleft()
            else:
                reply = self._handle(data)
            self._pending.append(reply)

            logger.debug("[SIMULATOR] RX: %s -> TX: %s", data.hex(), reply.hex())

    def read_until(self, terminator: bytes = b"\n") -> bytes:
        if not self._open:
            raise NotConnectedError("Simulator not open")

        if self.config.response_latency_ms > 0:
            time.sleep(self.config.response_latency_ms / 1000.0)

        if self.config.inject_timeout:
            logger.warning("[SIMULATOR] Injected timeout for testing")
            raise TransportTimeoutError("Simulated timeout")

        with self._lock:
            if not self._pending:
                return b""
            reply = self._pending.popleft()

        self._last_reply = decode_response(reply).row
        return reply

    def _handle(self, frame: bytes) -> bytes:
        """Route a frame to its handler and build the reply bytes."""
        text = frame[:-1] if frame.endswith(TERMINATOR) else frame
        if not text:
            return CONFIRMATION

        fixed = self.config.responses.get(text.decode("ascii", errors="replace"))
        if fixed is not None:
            return fixed.encode("ascii") + TERMINATOR

        tag = chr(text[0])
        if tag in "DZX":
            response = decode_response(frame)
            if response.data is not None:
                return self._handle_binary(tag, response.data)

        body = text[1:].decode("ascii", errors="replace").strip()

        if tag in "VF":
            return f"{tag} {self.config.firmware_version}".encode("ascii") + TERMINATOR
        elif tag == "S":
            return f"S {self.config.status}".encode("ascii") + TERMINATOR
        elif tag == "T":
            return body.encode("ascii") + TERMINATOR
        elif tag == "I":
            self._parameters.clear()
            self._last_payload = b""
            return ACK
        elif tag == "G":
            value = self._parameters.get(body)
            return value.encode("ascii") + TERMINATOR if value is not None else NAK
        elif tag == "P":
            return self._handle_put(body)

        return CONFIRMATION

    def _handle_binary(self, tag: str, payload: bytes) -> bytes:
        if tag == "X":
            expected = xor_checksum(self._last_reply.encode("utf-8")) ^ xor_checksum(self._last_payload)
            if len(payload) == 1 and payload[0] == expected:
                return ACK
            logger.warning("[SIMULATOR] Checksum mismatch: expected %02x, got %s", expected, payload.hex())
            return NAK

        self._last_payload = payload
        if tag == "Z":
            # echo checksum frames back as binary
            return encode_binary_frame("Z", payload)
        return ACK

    def _handle_put(self, body: str) -> bytes:
        if "=" not in body:
            return NAK
        name, value = body.split("=", 1)
        name = name.strip()
        if not name:
            return NAK
        self._parameters[name] = value.strip()
        return ACK
