"""
Frame encoding and decoding for the ProtoCom wire protocol.

    [1B tag]([1B length for binary frames])([payload 0..255])[\\n]

Text frames carry the command text as ASCII. Binary frames (D, Z, X)
carry a length byte followed by raw payload bytes. A bare newline is a
valid confirmation response.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from protocom.script.variables import VariableStore
from protocom.utils.exceptions import FormatError


TERMINATOR = b"\n"
BINARY_TAGS = frozenset("DZX")
MAX_PAYLOAD = 255

CONFIRMATION_GLYPH = "*"
BINARY_PLACEHOLDER = "<binary>"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class Response:
    """One decoded response line."""
    row: str
    data: Optional[bytes] = None
    raw: bytes = b""

    @property
    def is_confirmation(self) -> bool:
        return self.raw == TERMINATOR


def encode_frame(text: str, payload: Optional[bytes] = None) -> bytes:
    """
    Encode a text command with an optional trailing payload.

    Args:
        text: Tag plus command text (e.g., "S", "P speed=20").
        payload: Raw bytes appended after the text.

    Returns:
        Frame bytes ending with a newline.

    Raises:
        FormatError: If the text is not ASCII.

    Example:
        >>> encode_frame("V")
        b'V\\n'
    """
    try:
        frame = text.encode("ascii")
    except UnicodeEncodeError as e:
        raise FormatError(f"Command is not ASCII: {text!r}") from e

    if payload:
        frame += payload
    return frame + TERMINATOR


def encode_binary_frame(tag: str, payload: bytes) -> bytes:
    """
    Encode a length-prefixed binary frame.

    Raises:
        FormatError: If the tag is not one character or the payload exceeds 255 bytes.

    Example:
        >>> encode_binary_frame("D", b"Hi")
        b'D\\x02Hi\\n'
    """
    if len(tag) != 1:
        raise FormatError(f"Tag must be exactly 1 character, got: {tag!r}")
    if len(payload) > MAX_PAYLOAD:
        raise FormatError(f"Binary payload too long: {len(payload)} > {MAX_PAYLOAD} bytes")

    return encode_frame(tag, bytes([len(payload)]) + payload)


def decode_response(raw: bytes) -> Response:
    """
    Decode a response read up to the newline.

    Binary-shaped frames (D/Z/X tag whose length byte matches the frame
    size) expose their payload in ``data`` and render ``row`` as the tag
    followed by the payload hex.

    Byte 1 is a length on binary frames and a spacer on text lines, and the
    wire format does not tell them apart. A text reply "D "/"Z "/"X "
    followed by exactly 32 characters (0x20) is therefore decoded as a
    32-byte binary frame. Payload lengths stay symmetric with
    encode_binary_frame.

    Example:
        >>> decode_response(b"S READY\\n").row
        'S READY'
    """
    body = raw[:-1] if raw.endswith(TERMINATOR) else raw

    if len(body) >= 2 and chr(body[0]) in BINARY_TAGS and body[1] == len(body) - 2:
        payload = bytes(body[2:])
        return Response(row=f"{chr(body[0])} {payload.hex()}".rstrip(), data=payload, raw=raw)

    return Response(row=body.decode("ascii", errors="replace"), raw=raw)


def format_for_display(
    line: str,
    variables: Optional[VariableStore] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Human-readable form of a command or response line, for logs and UI only.

    - a bare newline becomes the confirmation glyph
    - a space is inserted after the tag if missing
    - binary (D) content is redacted
    - CR becomes the platform line separator
    - $name tokens are substituted when a variable store is given,
      unknown names shown as a placeholder
    - a backtick becomes the current timestamp

    Example:
        >>> format_for_display("Pspeed")
        'P speed'
    """
    if line == "\n":
        return CONFIRMATION_GLYPH
    if not line:
        return line

    tag, rest = line[0], line[1:]
    if rest and not rest.startswith(" "):
        rest = " " + rest

    if tag == "D":
        return f"D {BINARY_PLACEHOLDER}"

    if len(line) > 1:
        rest = rest.replace("\r", os.linesep)

    return tag + expand_text(rest, variables, now)


def expand_text(
    text: str,
    variables: Optional[VariableStore] = None,
    now: Optional[datetime] = None,
) -> str:
    """Substitute $name tokens (when a store is given) and backtick timestamps."""
    if variables is not None:
        text = variables.substitute(text)

    if "`" in text:
        stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
        text = text.replace("`", stamp)

    return text
