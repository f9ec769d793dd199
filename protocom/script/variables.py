"""
Script variables: name -> string value.
"""

import logging
from typing import Dict, Optional

from protocom.utils.exceptions import FormatError, UndefinedVariableError


logger = logging.getLogger(__name__)

SIGIL = "$"
UNKNOWN_PLACEHOLDER = "<unknown>"


def normalize_name(name: str) -> str:
    """Strip all spaces and a leading '$' from a variable name."""
    name = name.replace(" ", "")
    if name.startswith(SIGIL):
        name = name[1:]
    return name


class VariableStore:
    """
    Variables of one loaded script.

    Redefining a name overwrites the previous value.
    """

    def __init__(self):
        self._values: Dict[str, str] = {}

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._values

    def __len__(self) -> int:
        return len(self._values)

    def clear(self) -> None:
        self._values.clear()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)

    def set(self, name: str, value: str) -> None:
        key = normalize_name(name)
        if not key:
            raise FormatError(f"Empty variable name in {name!r}")
        if key in self._values:
            logger.debug(f"Redefining variable {key}")
        self._values[key] = value

    def get(self, name: str) -> str:
        """
        Look up a variable.

        Raises:
            UndefinedVariableError: If the name was never defined.
        """
        key = normalize_name(name)
        try:
            return self._values[key]
        except KeyError:
            raise UndefinedVariableError(f"Undefined variable: ${key}") from None

    def resolve(self, operand: str) -> str:
        """Return the variable value for '$name' operands, the operand itself otherwise."""
        if operand.startswith(SIGIL):
            return self.get(operand)
        return operand

    def define(self, raw_assignment: str, last_row: str = "") -> str:
        """
        Define a variable from 'name' or 'name=value'.

        Without a literal value the variable takes ``last_row``. A value
        starting with '$' is looked up once (no recursive expansion).

        Args:
            raw_assignment: Assignment text with the command tag removed.
            last_row: Most recent response line.

        Returns:
            The stored variable name.

        Raises:
            FormatError: If the name is empty.
            UndefinedVariableError: If the value refers to an unknown variable.
        """
        if "=" in raw_assignment:
            name, value = raw_assignment.split("=", 1)
            value = value.strip()
            if value.startswith(SIGIL):
                value = self.get(value)
        else:
            name, value = raw_assignment, last_row

        self.set(name, value)
        return normalize_name(name)

    def substitute(self, text: str, unknown: Optional[str] = UNKNOWN_PLACEHOLDER) -> str:
        """
        Replace every '$name' token with its value.

        A token runs from '$' to the next space or the end of the string.
        Undefined names become ``unknown``; with ``unknown=None`` they raise.
        """
        parts = []
        i = 0
        while i < len(text):
            start = text.find(SIGIL, i)
            if start < 0:
                parts.append(text[i:])
                break
            end = text.find(" ", start)
            if end < 0:
                end = len(text)
            parts.append(text[i:start])
            name = text[start + 1:end]
            if name in self._values:
                parts.append(self._values[name])
            elif unknown is None:
                raise UndefinedVariableError(f"Undefined variable: ${name}")
            else:
                parts.append(unknown)
            i = end
        return "".join(parts)
