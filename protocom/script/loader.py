"""
Script loader: raw lines to a table of named routines.

Script source format, one command per line:

    # comment            ignored, as are blank lines
    O <md5>              fingerprint of every line above it
    : name               starts routine "name", ends the previous one
    D <bytes>            binary payload, bytes taken verbatim from offset 2
    <tag> <text>         any other command

Commands before the first ':' marker belong to the entry routine "".
"""

import logging
from typing import Dict, Iterable, List

from protocom.protocol.checksum import fingerprint, verify_fingerprint
from protocom.script.command import Command, CommandKind, parse_command
from protocom.storage.file_store import FileStoreInterface
from protocom.utils.exceptions import FormatError, IntegrityError


logger = logging.getLogger(__name__)

ENTRY_ROUTINE = ""

RoutineTable = Dict[str, List[Command]]


def _strip_line_break(line: str) -> str:
    return line.rstrip("\r\n")


def parse_commands(lines: Iterable[str]) -> List[Command]:
    """
    First pass: filter comments, verify fingerprints, parse commands.

    Raises:
        IntegrityError: If an O marker does not match the lines above it.
        FormatError: If a D line holds non-ASCII characters.
    """
    seen: List[str] = []
    commands: List[Command] = []

    for line_number, raw_line in enumerate(lines, start=1):
        line = _strip_line_break(raw_line)
        clean = line.strip()

        if clean and not clean.startswith("#"):
            if clean.startswith("O"):
                digest = fingerprint(seen)
                if not verify_fingerprint(digest, clean):
                    raise IntegrityError(
                        f"Fingerprint mismatch on line {line_number}: expected {digest}"
                    )
                logger.debug(f"Fingerprint verified on line {line_number}")
            elif clean.startswith("D"):
                try:
                    payload = line[2:].encode("ascii")
                except UnicodeEncodeError as e:
                    raise FormatError(f"Non-ASCII binary data on line {line_number}: {e}") from e
                commands.append(parse_command("D", payload=payload))
            else:
                commands.append(parse_command(line.lstrip()))

        seen.append(line)

    return commands


def split_routines(commands: Iterable[Command]) -> RoutineTable:
    """
    Second pass: split the command stream at ':' markers.

    Raises:
        FormatError: If a marker has no name or a name is used twice.
    """
    routines: RoutineTable = {}
    current_name = ENTRY_ROUTINE
    current: List[Command] = []

    for command in commands:
        if command.kind is not CommandKind.ROUTINE_MARKER:
            current.append(command)
            continue

        routines[current_name] = current
        name = (command.text or "").strip()
        if not name:
            raise FormatError(f"Routine name missing after ':' in {command.raw!r}")
        if name in routines:
            raise FormatError(f"Duplicate routine name: {name!r}")
        current_name = name
        current = []

    routines[current_name] = current
    return routines


def parse_script(lines: Iterable[str]) -> RoutineTable:
    """
    Parse script lines into a routine table.

    Args:
        lines: Script lines in file order.

    Returns:
        Mapping of routine name to its ordered commands.

    Raises:
        IntegrityError: On fingerprint mismatch.
        FormatError: On malformed routine markers or binary lines.
    """
    routines = split_routines(parse_commands(lines))
    logger.debug(
        f"Parsed {sum(len(c) for c in routines.values())} commands "
        f"in {len(routines)} routine(s)"
    )
    return routines


def load_script_file(path: str, file_store: FileStoreInterface) -> RoutineTable:
    """
    Read and parse a script file.

    Raises:
        FileError: If the file cannot be read.
        IntegrityError: On fingerprint mismatch.
        FormatError: On malformed content.
    """
    lines = file_store.read_all_lines(path)
    logger.info(f"Loaded {len(lines)} lines from {path}")
    return parse_script(lines)
