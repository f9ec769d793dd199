"""
Protocol codec: sends commands over a transport and reads one response each.

The protocol is blocking and line-oriented: every frame written is followed
by exactly one read-until-newline before the next operation.
"""

import logging
from typing import Optional

from protocom.protocol.checksum import hex_to_bytes, xor_checksum, format_checksum
from protocom.protocol.encoder import (
    TERMINATOR,
    Response,
    decode_response,
    encode_binary_frame,
    encode_frame,
)
from protocom.protocol.interface import TransportInterface
from protocom.protocol.logger import ProtocolLogger, get_protocol_logger
from protocom.utils.exceptions import FormatError, TransportError


logger = logging.getLogger(__name__)

DEFAULT_HEX_INLINE_LIMIT = 511

# Frame tag used when a hex command is sent as binary
_BINARY_TAG_FOR = {"H": "D", "Z": "Z", "X": "X"}


class ProtocolCodec:
    """Encodes commands onto a transport and decodes the replies."""

    def __init__(
        self,
        transport: TransportInterface,
        hex_inline_limit: int = DEFAULT_HEX_INLINE_LIMIT,
        protocol_logger: Optional[ProtocolLogger] = None,
    ):
        """
        Args:
            transport: Byte-stream transport.
            hex_inline_limit: Hex strings shorter than this go out as binary frames.
            protocol_logger: TX/RX ring buffer, the global one by default.
        """
        self.transport = transport
        self.hex_inline_limit = hex_inline_limit
        self._protocol_logger = protocol_logger or get_protocol_logger()
        self.last_sent_payload: Optional[bytes] = None

    def exchange(self, frame: bytes, payload: Optional[bytes] = None) -> Response:
        """
        Write one frame and read one response line.

        Args:
            frame: Complete encoded frame.
            payload: Binary payload carried by the frame, kept as ``last_sent_payload``.

        Raises:
            TransportError: On write/read failure or timeout.
        """
        self.last_sent_payload = payload
        self._protocol_logger.log_tx(frame)
        try:
            self.transport.write(frame)
            raw = self.transport.read_until(TERMINATOR)
        except TransportError as e:
            self._protocol_logger.log_error(str(e), frame)
            raise

        self._protocol_logger.log_rx(raw)
        return decode_response(raw)

    def send(self, command_text: str, payload: Optional[bytes] = None) -> Response:
        """Send a command transparently (text plus optional raw payload)."""
        return self.exchange(encode_frame(command_text, payload), payload)

    def send_binary(self, tag: str, payload: bytes) -> Response:
        """Send a length-prefixed binary frame."""
        return self.exchange(encode_binary_frame(tag, payload), payload)

    def send_hex(self, command_text: str) -> Response:
        """
        Send a hex command (H, Z or X with arguments).

        Spaces are removed; for H/X/Z commands of odd length the tag is
        dropped and the rest decoded. Short hex strings go out as binary
        frames (H as D), long ones as the uppercased command text.

        Raises:
            FormatError: If no hex digits remain or decoding fails.

        Example:
            "H 48656c6c6f" -> b"D\\x05Hello\\n"
        """
        compact = command_text.replace(" ", "")
        if not compact:
            raise FormatError("Empty hex command")

        tag = compact[0]
        hex_text = compact
        if tag in _BINARY_TAG_FOR and len(compact) % 2 == 1:
            hex_text = compact[1:]

        if not hex_text:
            raise FormatError(f"No hex digits in {command_text!r}")

        if len(hex_text) >= self.hex_inline_limit:
            logger.debug(f"Hex payload of {len(hex_text)} chars sent as text")
            # long payloads still have to be valid hex
            hex_to_bytes(hex_text)
            return self.send(command_text.strip().upper())

        payload = hex_to_bytes(hex_text)
        return self.send_binary(_BINARY_TAG_FOR.get(tag, "D"), payload)

    def send_crc(self, command_text: str, last_row: str, last_data: bytes) -> Response:
        """
        Send the XOR checksum of the last exchange.

        A bare X sends xor(last_row) ^ xor(last_data) as a one-byte X frame;
        X with arguments is sent as hex.
        """
        if command_text.strip() != "X":
            return self.send_hex(command_text)

        checksum = xor_checksum(last_row.encode("utf-8")) ^ xor_checksum(last_data)
        logger.debug(f"CRC of last exchange: {format_checksum(checksum)}")
        return self.send_binary("X", bytes([checksum]))
