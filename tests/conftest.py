# tests/conftest.py
import logging
from typing import List, Tuple

import pytest

from protocom.config.models import EngineConfig, SimulatorConfig
from protocom.protocol.interface import TransportInterface
from protocom.protocol.logger import ProtocolLogger
from protocom.script.engine import ScriptEngine, Severity
from protocom.simulator.mock_serial import MockSerialTransport
from protocom.storage.file_store import LocalFileStore


class NullTransport(TransportInterface):
    """Accepts every frame, the stream always ends without a reply."""

    def __init__(self):
        self.written: List[bytes] = []
        self._open = True

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self._open = False

    def is_open(self) -> bool:
        return self._open

    def write(self, data: bytes) -> None:
        self.written.append(bytes(data))

    def read_until(self, terminator: bytes = b"\n") -> bytes:
        return b""


class RecordingInfo:
    """Info channel that keeps every notification."""

    def __init__(self):
        self.calls: List[Tuple[str, bool, Severity]] = []

    def __call__(self, message: str, requires_input: bool, severity: Severity) -> None:
        self.calls.append((message, requires_input, severity))

    def messages(self, severity: Severity) -> List[str]:
        return [m for m, _, s in self.calls if s is severity]


class RecordingCallback:
    """Command callback that keeps (raw, last_row, last_data) tuples."""

    def __init__(self):
        self.calls: List[Tuple[str, str, bytes]] = []

    def __call__(self, raw: str, last_row: str, last_data: bytes) -> None:
        self.calls.append((raw, last_row, last_data))

    @property
    def commands(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def info():
    return RecordingInfo()


@pytest.fixture
def callback():
    return RecordingCallback()


@pytest.fixture
def null_transport():
    return NullTransport()


@pytest.fixture
def device():
    transport = MockSerialTransport(SimulatorConfig(firmware_version="1.2.3"))
    transport.open()
    yield transport
    transport.close()


@pytest.fixture
def make_engine(info, callback, tmp_path):
    """Build an engine around a transport with recording handlers."""
    def _make(transport, **config):
        return ScriptEngine(
            transport,
            info,
            command_callback=callback,
            config=EngineConfig(**config),
            file_store=LocalFileStore(str(tmp_path)),
            protocol_logger=ProtocolLogger(),
        )

    return _make


@pytest.fixture
def restore_root_logger():
    """Undo handler changes made by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
