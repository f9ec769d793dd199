"""
Condition evaluation for '?' gate lines.

    ?                   always true
    ?a==b               equality
    ?a<>b               inequality
    ?a                  compares a with the last response row

Operands starting with '$' are variable lookups.
"""

from protocom.script.variables import SIGIL, VariableStore
from protocom.utils.exceptions import ConditionError, UndefinedVariableError


EQUAL = "=="
NOT_EQUAL = "<>"


def _operand(value: str, variables: VariableStore) -> str:
    if not value:
        raise ConditionError("Blank condition operand")
    if value.startswith(SIGIL):
        try:
            return variables.get(value)
        except UndefinedVariableError as e:
            raise ConditionError(str(e)) from e
    return value


def evaluate_condition(raw: str, variables: VariableStore, last_row: str) -> bool:
    """
    Evaluate a condition line.

    Args:
        raw: Full condition line, with or without the leading '?'.
        variables: Variables for '$name' operands.
        last_row: Right-hand operand when the line has no delimiter.

    Returns:
        True when the gate opens.

    Raises:
        ConditionError: If an operand is blank or an undefined variable.

    Example:
        >>> evaluate_condition("?", VariableStore(), "")
        True
    """
    condition = raw.strip()
    if condition.startswith("?"):
        condition = condition[1:].strip()

    if not condition:
        return True

    delimiter = NOT_EQUAL if NOT_EQUAL in condition else EQUAL

    if delimiter in condition:
        left, right = condition.split(delimiter, 1)
        left = _operand(left.strip(), variables)
        right = _operand(right.strip(), variables)
    else:
        delimiter = EQUAL
        left = _operand(condition, variables)
        right = last_row

    equal = left == right
    return not equal if delimiter == NOT_EQUAL else equal
