"""
Protocol package for ProtoCom serial communication.
"""

from protocom.protocol.interface import TransportInterface
from protocom.protocol.serial_transport import SerialTransport
from protocom.protocol.port_scanner import PortInfo, list_available_ports
from protocom.protocol.checksum import (
    xor_checksum,
    format_checksum,
    hex_to_bytes,
    bytes_to_hex,
    fingerprint,
    verify_fingerprint,
)
from protocom.protocol.encoder import (
    Response,
    encode_frame,
    encode_binary_frame,
    decode_response,
    format_for_display,
)
from protocom.protocol.codec import ProtocolCodec

__all__ = [
    "TransportInterface",
    "SerialTransport",
    "PortInfo",
    "list_available_ports",
    "xor_checksum",
    "format_checksum",
    "hex_to_bytes",
    "bytes_to_hex",
    "fingerprint",
    "verify_fingerprint",
    "Response",
    "encode_frame",
    "encode_binary_frame",
    "decode_response",
    "format_for_display",
    "ProtocolCodec",
]
