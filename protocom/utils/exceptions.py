"""
Custom exception classes for the ProtoCom interpreter.
"""


class ProtoComException(Exception):
    """Base exception for all ProtoCom errors."""
    pass


class FormatError(ProtoComException):
    """Malformed hex data, condition, routine marker or command line."""
    pass


class ConditionError(FormatError):
    """Condition operand is blank or refers to an undefined variable."""
    pass


class IntegrityError(ProtoComException):
    """Script fingerprint (O line) does not match the preceding lines."""
    pass


class UndefinedVariableError(ProtoComException):
    """Lookup of a $name that was never defined."""
    pass


class RoutineNotFoundError(ProtoComException):
    """Jump or execute to a routine name that is not in the table."""
    pass


class CallDepthExceededError(ProtoComException):
    """Jump budget exhausted for the current run."""
    pass


class TransportError(ProtoComException):
    """Byte-stream transport failure (open, write or read)."""
    pass


class NotConnectedError(TransportError):
    """Raised when operation requires an open transport but it is closed."""
    pass


class PortNotFoundError(TransportError):
    """Serial port does not exist."""
    pass


class PortInUseError(TransportError):
    """Serial port is already open by another application."""
    pass


class TransportTimeoutError(TransportError):
    """No complete response line within the configured read timeout."""
    pass


class FileError(ProtoComException):
    """Script or side-file could not be read or written."""
    pass


class MissingHandlerError(ProtoComException):
    """Engine constructed without the mandatory info handler."""
    pass
