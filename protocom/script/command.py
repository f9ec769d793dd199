"""
Command model: one parsed script line.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from protocom.utils.exceptions import FormatError


class CommandKind(Enum):
    """Action selected by the leading tag character."""
    CONDITION = "?"
    VARIABLE = "$"
    ASSIGN_LAST = ">"
    ROUTINE_MARKER = ":"
    COMMENT = "#"
    FINGERPRINT = "O"
    JUMP = "J"
    BINARY = "D"
    HEX = "H"
    CHECKSUM_DATA = "Z"
    CRC = "X"
    LOAD_FILE = "L"
    MESSAGE = "M"
    QUIT = "Q"
    USER_INPUT = "U"
    WRITE_FILE = "W"
    TRANSPARENT = ""  # anything else is forwarded to the device as-is

    @classmethod
    def from_tag(cls, tag: str) -> "CommandKind":
        """Map a tag character to its kind, TRANSPARENT when unknown."""
        if not tag:
            return cls.TRANSPARENT
        return _KIND_BY_TAG.get(tag, cls.TRANSPARENT)


_KIND_BY_TAG = {kind.value: kind for kind in CommandKind if kind.value}


@dataclass(frozen=True)
class Command:
    """A parsed script line. Never mutated after loading."""
    tag: str
    kind: CommandKind
    raw: str
    text: Optional[str] = None
    payload: Optional[bytes] = None
    parameters: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def body(self) -> str:
        """Everything after the tag character, trimmed."""
        return self.raw[1:].strip()


def parse_command(line: str, payload: Optional[bytes] = None) -> Command:
    """
    Parse one raw script line.

    Byte 1 is the length/spacer field, so ``text`` starts at index 2.

    Args:
        line: Raw line without its line terminator.
        payload: Binary payload for D lines (already extracted by the loader).

    Returns:
        Immutable Command.

    Raises:
        FormatError: If the line is empty.

    Example:
        >>> parse_command("P speed 20").parameters
        ('speed', '20')
    """
    if not line:
        raise FormatError("Cannot parse an empty command line")

    tag = line[0]
    text = line[2:] if len(line) > 2 else None
    parameters = tuple(text.split()) if text is not None else ()

    return Command(
        tag=tag,
        kind=CommandKind.from_tag(tag),
        raw=line,
        text=text,
        payload=payload,
        parameters=parameters,
    )
