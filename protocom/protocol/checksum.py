"""
Checksum and integrity helpers for the ProtoCom protocol and scripts.
"""

import hashlib
from typing import Iterable

from protocom.utils.exceptions import FormatError


HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def xor_checksum(data: bytes) -> int:
    """
    Calculate the XOR checksum of a byte sequence.

    Args:
        data: Bytes to fold.

    Returns:
        Checksum byte (0-255), 0 for empty input.

    Example:
        >>> xor_checksum(b"\\x01\\x02")
        3
    """
    checksum = 0
    for b in data:
        checksum ^= b
    return checksum


def format_checksum(value: int) -> str:
    """Render a checksum byte as two lowercase hex digits."""
    return f"{value & 0xFF:02x}"


def text_checksum(text: str) -> str:
    """
    XOR checksum of UTF-8 encoded text, as two hex digits.

    Example:
        >>> text_checksum("AB")
        '03'
    """
    return format_checksum(xor_checksum(text.encode("utf-8")))


def bytes_to_hex(data: bytes) -> str:
    """Lowercase hex rendering, two digits per byte."""
    return data.hex()


def hex_to_bytes(hex_string: str) -> bytes:
    """
    Decode pairs of hex digits.

    Args:
        hex_string: Hex digits without separators.

    Returns:
        Decoded bytes.

    Raises:
        FormatError: On odd length or non-hex characters.

    Example:
        >>> hex_to_bytes("48656c6c6f")
        b'Hello'
    """
    if len(hex_string) % 2 != 0:
        raise FormatError(f"Hex string has odd length ({len(hex_string)}): {hex_string!r}")

    bad = [c for c in hex_string if c not in HEX_DIGITS]
    if bad:
        raise FormatError(f"Invalid hex character {bad[0]!r} in {hex_string!r}")

    return bytes.fromhex(hex_string)


def fingerprint(lines: Iterable[str]) -> str:
    """
    MD5 digest of script lines, each followed by a newline.

    Args:
        lines: Raw script lines preceding the O marker.

    Returns:
        32 lowercase hex digits.
    """
    digest = hashlib.md5()
    for line in lines:
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


def verify_fingerprint(candidate: str, expected_line: str) -> bool:
    """
    Check a computed digest against an O marker line.

    The marker may carry extra annotation around the digest, so this is
    a containment test rather than equality.
    """
    return bool(candidate) and candidate in expected_line


def sign_script(lines: Iterable[str]) -> str:
    """
    Build the O marker line that seals the given script lines.

    Example:
        >>> sign_script([]).startswith("O ")
        True
    """
    return f"O {fingerprint(lines)}"
