"""
Script execution engine (state machine).

Runs routines of a loaded script against a transport. Jumps push frames on
an explicit stack bounded by the jump budget, so a U prompt anywhere in the
call tree suspends the whole run: execute() returns an AWAITING_INPUT
outcome and the driver continues it with resume().
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from protocom.config.models import EngineConfig
from protocom.protocol.codec import ProtocolCodec
from protocom.protocol.encoder import CONFIRMATION_GLYPH, Response, expand_text, format_for_display
from protocom.protocol.interface import TransportInterface
from protocom.protocol.logger import ProtocolLogger
from protocom.script.command import Command, CommandKind
from protocom.script.condition import evaluate_condition
from protocom.script.loader import ENTRY_ROUTINE, RoutineTable, parse_script
from protocom.script.variables import VariableStore
from protocom.storage.file_store import FileStoreInterface, LocalFileStore
from protocom.utils.exceptions import (
    CallDepthExceededError,
    ConditionError,
    FileError,
    FormatError,
    IntegrityError,
    MissingHandlerError,
    ProtoComException,
    RoutineNotFoundError,
    TransportError,
    UndefinedVariableError,
)


logger = logging.getLogger(__name__)

QUIT_MESSAGE = "-QUIT!-"


class Severity(Enum):
    """Kind of message sent to the info channel."""
    INFO = "info"
    MESSAGE = "message"
    PROMPT = "prompt"
    WARNING = "warning"
    ERROR = "error"


class RunStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"
    TERMINATED = "terminated"


class TerminationReason(Enum):
    COMPLETED = "completed"
    QUIT = "quit"
    ROUTINE_NOT_FOUND = "routine_not_found"
    CONDITION_ERROR = "condition_error"
    CALL_DEPTH_EXCEEDED = "call_depth_exceeded"
    UNDEFINED_VARIABLE = "undefined_variable"
    FORMAT_ERROR = "format_error"
    TRANSPORT_ERROR = "transport_error"


# Most specific first
_ERROR_REASONS = (
    (ConditionError, TerminationReason.CONDITION_ERROR),
    (FormatError, TerminationReason.FORMAT_ERROR),
    (UndefinedVariableError, TerminationReason.UNDEFINED_VARIABLE),
    (RoutineNotFoundError, TerminationReason.ROUTINE_NOT_FOUND),
    (CallDepthExceededError, TerminationReason.CALL_DEPTH_EXCEEDED),
    (TransportError, TerminationReason.TRANSPORT_ERROR),
)


@dataclass(frozen=True)
class RunOutcome:
    """Result of execute() or resume()."""
    status: RunStatus
    reason: Optional[TerminationReason] = None
    message: str = ""

    @property
    def awaiting_input(self) -> bool:
        return self.status is RunStatus.AWAITING_INPUT

    @property
    def completed(self) -> bool:
        return self.reason is TerminationReason.COMPLETED


@dataclass
class _Frame:
    """One routine invocation on the call stack."""
    routine: str
    commands: List[Command]
    position: int = 0
    gate_open: bool = True
    caller: Optional[Command] = None  # J command waiting for this frame


class _Step(Enum):
    NEXT = "next"
    CALL = "call"
    SUSPEND = "suspend"


InfoHandler = Callable[[str, bool, Severity], None]
CommandCallback = Callable[[str, str, bytes], None]


class ScriptEngine:
    """
    Interpreter for ProtoCom scripts.

    Not safe for concurrent use: loads and runs on one instance must be
    serialized by the caller.
    """

    def __init__(
        self,
        transport: TransportInterface,
        info_handler: InfoHandler,
        command_callback: Optional[CommandCallback] = None,
        config: Optional[EngineConfig] = None,
        file_store: Optional[FileStoreInterface] = None,
        protocol_logger: Optional[ProtocolLogger] = None,
    ):
        """
        Initialize engine.

        Args:
            transport: Byte-stream transport (opened by the caller).
            info_handler: Receives (message, requires_input, severity).
            command_callback: Receives (raw_command, last_row, last_data)
                after every command.
            config: Engine configuration.
            file_store: File access for scripts and L/W commands.
            protocol_logger: TX/RX ring buffer, the global one by default.

        Raises:
            MissingHandlerError: If info_handler is None.
        """
        if info_handler is None:
            raise MissingHandlerError("ScriptEngine requires an info handler")

        self._config = config or EngineConfig()
        self._codec = ProtocolCodec(
            transport,
            hex_inline_limit=self._config.hex_inline_limit,
            protocol_logger=protocol_logger,
        )
        self._info_handler = info_handler
        self._command_callback = command_callback
        self._file_store = file_store or LocalFileStore()

        self._routines: RoutineTable = {}
        self._variables = VariableStore()

        self._last_row = ""
        self._last_data = b""
        self._quit_signal = False
        self._jump_budget = self._config.max_jumps
        self._frames: List[_Frame] = []
        self._pending_prompt: Optional[Command] = None
        self._outcome = RunOutcome(RunStatus.IDLE)

        self._handlers: Dict[CommandKind, Callable[[_Frame, Command], _Step]] = {
            CommandKind.CONDITION: self._do_condition,
            CommandKind.VARIABLE: self._do_variable,
            CommandKind.ASSIGN_LAST: self._do_variable,
            CommandKind.JUMP: self._do_jump,
            CommandKind.BINARY: self._do_binary,
            CommandKind.HEX: self._do_hex,
            CommandKind.CHECKSUM_DATA: self._do_hex,
            CommandKind.CRC: self._do_crc,
            CommandKind.LOAD_FILE: self._do_load_file,
            CommandKind.MESSAGE: self._do_message,
            CommandKind.QUIT: self._do_quit,
            CommandKind.USER_INPUT: self._do_user_input,
            CommandKind.WRITE_FILE: self._do_write_file,
            CommandKind.TRANSPARENT: self._do_transparent,
            # consumed by the loader, never executed
            CommandKind.ROUTINE_MARKER: self._do_ignore,
            CommandKind.COMMENT: self._do_ignore,
            CommandKind.FINGERPRINT: self._do_ignore,
        }

    # --- State ---

    @property
    def routines(self) -> RoutineTable:
        return dict(self._routines)

    @property
    def variables(self) -> VariableStore:
        return self._variables

    @property
    def last_row(self) -> str:
        return self._last_row

    @property
    def last_data(self) -> bytes:
        return self._last_data

    @property
    def quit_signal(self) -> bool:
        return self._quit_signal

    @property
    def jump_budget(self) -> int:
        return self._jump_budget

    @property
    def status(self) -> RunStatus:
        return self._outcome.status

    @property
    def outcome(self) -> RunOutcome:
        return self._outcome

    @property
    def awaiting_input(self) -> bool:
        return self._outcome.awaiting_input

    # --- Loading ---

    def _check_idle(self, action: str) -> None:
        if self.awaiting_input:
            raise RuntimeError(f"Cannot {action} while waiting for user input. Call resume() first.")
        if self.status is RunStatus.RUNNING:
            raise RuntimeError(f"Cannot {action} while a script is running")

    def _reset(self) -> None:
        self._routines = {}
        self._variables.clear()
        self._last_row = ""
        self._last_data = b""
        self._quit_signal = False
        self._jump_budget = self._config.max_jumps
        self._frames = []
        self._pending_prompt = None
        self._outcome = RunOutcome(RunStatus.IDLE)

    def load_lines(self, lines: Iterable[str]) -> None:
        """
        Replace the routine table with a parsed script.

        State is reset before parsing, so a failed load leaves no routines.

        Raises:
            IntegrityError: On fingerprint mismatch.
            FormatError: On malformed script content.
        """
        self._check_idle("load a script")
        self._reset()

        try:
            routines = parse_script(lines)
        except (IntegrityError, FormatError) as e:
            logger.error(f"Script rejected: {e}")
            self._notify(f"Script error: {e}", severity=Severity.ERROR)
            raise

        self._routines = routines
        logger.info(f"Script loaded: {len(routines)} routine(s)")

    def load_file(self, path: str) -> None:
        """
        Load a script file through the file store.

        Raises:
            FileError: If the file cannot be read.
            IntegrityError: On fingerprint mismatch.
            FormatError: On malformed script content.
        """
        self._check_idle("load a script")
        self._reset()

        try:
            lines = self._file_store.read_all_lines(path)
        except FileError as e:
            logger.error(f"Error loading script file: {e}")
            self._notify(f"Error loading script file: {e}", severity=Severity.ERROR)
            raise

        self.load_lines(lines)

    def run_file(self, path: str, routine: str = ENTRY_ROUTINE) -> RunOutcome:
        """Load a script file and execute it."""
        self.load_file(path)
        return self.execute(routine)

    # --- Execution ---

    def execute(self, routine: str = ENTRY_ROUTINE) -> RunOutcome:
        """
        Run a routine of the loaded script.

        When the entry routine is requested but holds no commands, the first
        named routine of the script is started instead.

        Returns:
            TERMINATED outcome, or AWAITING_INPUT when a U command prompted
            the user (continue with resume()).
        """
        self._check_idle("start a run")

        self._quit_signal = False
        self._jump_budget = self._config.max_jumps
        self._frames = []
        self._pending_prompt = None

        if routine == ENTRY_ROUTINE:
            routine = self._entry_point()

        if routine not in self._routines:
            return self._abort(RoutineNotFoundError(f"Routine '{routine}' not found"))

        logger.info(f"Executing routine '{routine}'")
        self._frames.append(_Frame(routine, self._routines[routine]))
        self._outcome = RunOutcome(RunStatus.RUNNING)
        return self._run_guarded()

    def _entry_point(self) -> str:
        if self._routines.get(ENTRY_ROUTINE):
            return ENTRY_ROUTINE
        for name in self._routines:
            if name != ENTRY_ROUTINE:
                logger.info(f"Entry routine is empty, starting '{name}'")
                return name
        return ENTRY_ROUTINE

    def resume(self, value: str) -> RunOutcome:
        """
        Deliver user input for the pending U prompt and continue the run.

        Input without a pending prompt is ignored with a warning.
        """
        if not self.awaiting_input or self._pending_prompt is None:
            logger.warning("User input received while no prompt is pending, ignored")
            return self._outcome

        command = self._pending_prompt
        self._pending_prompt = None
        self._last_row = value.rstrip("\r\n")
        self._outcome = RunOutcome(RunStatus.RUNNING)

        self._notify_command(command)
        if self._quit_signal:
            return self._finish(TerminationReason.QUIT)
        return self._run_guarded()

    def cancel(self) -> RunOutcome:
        """Abandon a run that is waiting for user input (counts as a quit)."""
        if not self.awaiting_input:
            return self._outcome

        self._pending_prompt = None
        self._quit_signal = True
        return self._finish(TerminationReason.QUIT)

    def _run_guarded(self) -> RunOutcome:
        try:
            return self._run()
        except Exception:
            # callback or info handler raised
            self._quit_signal = True
            self._frames = []
            self._pending_prompt = None
            self._outcome = RunOutcome(RunStatus.TERMINATED, message="aborted by exception")
            raise

    def _run(self) -> RunOutcome:
        while self._frames:
            frame = self._frames[-1]

            if frame.position >= len(frame.commands):
                self._frames.pop()
                logger.debug(f"Routine '{frame.routine}' finished")
                if frame.caller is not None:
                    self._notify_command(frame.caller)
                    if self._quit_signal:
                        return self._finish(TerminationReason.QUIT)
                continue

            command = frame.commands[frame.position]
            frame.position += 1

            if frame.gate_open or command.kind is CommandKind.CONDITION:
                try:
                    step = self._handlers[command.kind](frame, command)
                except ProtoComException as e:
                    return self._abort(e)
            else:
                logger.debug(f"Skipped (gate closed): {command.raw}")
                step = _Step.NEXT

            if step is _Step.SUSPEND:
                self._pending_prompt = command
                self._outcome = RunOutcome(RunStatus.AWAITING_INPUT, message=expand_text(command.body, self._variables))
                return self._outcome
            if step is _Step.CALL:
                continue

            self._notify_command(command)
            if self._quit_signal:
                return self._finish(TerminationReason.QUIT)

        return self._finish(TerminationReason.COMPLETED)

    def _finish(self, reason: TerminationReason) -> RunOutcome:
        # pending jumps still report back on a quit
        while self._frames:
            frame = self._frames.pop()
            if frame.caller is not None and reason is TerminationReason.QUIT:
                self._notify_command(frame.caller)

        logger.info(f"Script terminated: {reason.value}")
        self._outcome = RunOutcome(RunStatus.TERMINATED, reason)
        return self._outcome

    def _abort(self, error: ProtoComException) -> RunOutcome:
        reason = None
        for error_type, error_reason in _ERROR_REASONS:
            if isinstance(error, error_type):
                reason = error_reason
                break
        if reason is None:
            raise error

        self._quit_signal = True
        self._frames = []
        self._pending_prompt = None

        logger.error(f"Script aborted ({reason.value}): {error}")
        self._notify(f"Error: {error}", severity=Severity.ERROR)
        self._outcome = RunOutcome(RunStatus.TERMINATED, reason, str(error))
        return self._outcome

    # --- Notifications ---

    def _notify(self, message: str, requires_input: bool = False, severity: Severity = Severity.INFO) -> None:
        self._info_handler(message, requires_input, severity)

    def _notify_command(self, command: Command) -> None:
        if self._command_callback is not None:
            self._command_callback(command.raw, self._last_row, self._last_data)

    # --- Transport ---

    def _apply(self, response: Response) -> None:
        """Record a response as the new last row / last data."""
        self._last_row = response.row
        if response.data is not None:
            self._last_data = response.data
        elif self._codec.last_sent_payload is not None:
            self._last_data = self._codec.last_sent_payload

        display = CONFIRMATION_GLYPH if response.is_confirmation else format_for_display(response.row)
        logger.info(f"< {display}")

    # --- Command handlers ---

    def _do_condition(self, frame: _Frame, command: Command) -> _Step:
        frame.gate_open = evaluate_condition(command.raw, self._variables, self._last_row)
        logger.debug(f"Condition {command.raw!r}: {'open' if frame.gate_open else 'closed'}")
        return _Step.NEXT

    def _do_variable(self, frame: _Frame, command: Command) -> _Step:
        self._variables.define(command.raw[1:], self._last_row)
        self._notify(format_for_display(command.raw, self._variables))
        return _Step.NEXT

    def _do_jump(self, frame: _Frame, command: Command) -> _Step:
        target = command.body
        if target.startswith(":"):
            target = target[1:].strip()

        self._jump_budget -= 1
        if self._jump_budget < 0:
            raise CallDepthExceededError(
                f"Jump budget of {self._config.max_jumps} exhausted at jump to '{target}'"
            )
        if target not in self._routines:
            raise RoutineNotFoundError(f"Routine '{target}' not found")

        logger.debug(f"Jump to '{target}' ({self._jump_budget} jumps left)")
        self._frames.append(_Frame(target, self._routines[target], caller=command))
        return _Step.CALL

    def _do_binary(self, frame: _Frame, command: Command) -> _Step:
        logger.info(f"> {format_for_display(command.raw)}")
        self._apply(self._codec.send_binary("D", command.payload or b""))
        return _Step.NEXT

    def _do_hex(self, frame: _Frame, command: Command) -> _Step:
        logger.info(f"> {format_for_display(command.raw)}")
        self._apply(self._codec.send_hex(command.raw))
        return _Step.NEXT

    def _do_crc(self, frame: _Frame, command: Command) -> _Step:
        logger.info(f"> {format_for_display(command.raw)}")
        self._apply(self._codec.send_crc(command.raw, self._last_row, self._last_data))
        return _Step.NEXT

    def _do_load_file(self, frame: _Frame, command: Command) -> _Step:
        path = command.body
        try:
            lines = self._file_store.read_all_lines(path)
        except FileError as e:
            logger.warning(f"L command skipped: {e}")
            self._notify(f"Cannot load {path}: {e}", severity=Severity.WARNING)
            return _Step.NEXT

        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            logger.info(f"> {format_for_display(line)}")
            self._apply(self._codec.send(line))
        return _Step.NEXT

    def _do_message(self, frame: _Frame, command: Command) -> _Step:
        self._notify(expand_text(command.body, self._variables), severity=Severity.MESSAGE)
        return _Step.NEXT

    def _do_quit(self, frame: _Frame, command: Command) -> _Step:
        self._quit_signal = True
        self._notify(QUIT_MESSAGE, severity=Severity.WARNING)
        return _Step.NEXT

    def _do_user_input(self, frame: _Frame, command: Command) -> _Step:
        self._notify(expand_text(command.body, self._variables), True, Severity.PROMPT)
        return _Step.SUSPEND

    def _do_write_file(self, frame: _Frame, command: Command) -> _Step:
        path = command.body or self._config.output_file
        try:
            self._file_store.append_line(path, self._last_row)
        except FileError as e:
            logger.warning(f"W command failed: {e}")
            self._notify(f"Cannot write {path}: {e}", severity=Severity.WARNING)
        return _Step.NEXT

    def _do_transparent(self, frame: _Frame, command: Command) -> _Step:
        logger.info(f"> {format_for_display(command.raw)}")
        self._apply(self._codec.send(command.raw))
        return _Step.NEXT

    def _do_ignore(self, frame: _Frame, command: Command) -> _Step:
        logger.debug(f"Ignored: {command.raw}")
        return _Step.NEXT
