"""Unit tests for the simulated device."""

import pytest

from protocom.config.models import SimulatorConfig
from protocom.protocol.checksum import xor_checksum
from protocom.protocol.encoder import encode_binary_frame
from protocom.simulator.mock_serial import MockSerialTransport
from protocom.utils.exceptions import NotConnectedError, TransportTimeoutError


def ask(device, frame: bytes) -> bytes:
    device.write(frame)
    return device.read_until()


def test_not_open_raises():
    device = MockSerialTransport()
    with pytest.raises(NotConnectedError):
        device.write(b"V\n")
    with pytest.raises(NotConnectedError):
        device.read_until()


def test_open_close(device):
    assert device.is_open()
    device.close()
    assert not device.is_open()


def test_version_and_status(device):
    assert ask(device, b"V\n") == b"V 1.2.3\n"
    assert ask(device, b"F\n") == b"F 1.2.3\n"
    assert ask(device, b"S\n") == b"S READY\n"


def test_echo(device):
    assert ask(device, b"T hello world\n") == b"hello world\n"


def test_parameters(device):
    assert ask(device, b"P speed=20\n") == b"Y\n"
    assert ask(device, b"G speed\n") == b"20\n"
    assert ask(device, b"G other\n") == b"N\n"
    assert ask(device, b"P broken\n") == b"N\n"
    assert device.parameters == {"speed": "20"}

    assert ask(device, b"I\n") == b"Y\n"
    assert device.parameters == {}


def test_unknown_command_confirms(device):
    assert ask(device, b"K\n") == b"\n"
    assert ask(device, b"\n") == b"\n"


def test_binary_frames(device):
    assert ask(device, encode_binary_frame("D", b"AB")) == b"Y\n"
    assert ask(device, encode_binary_frame("Z", b"\x01\x02")) == b"Z\x02\x01\x02\n"


def test_checksum_frame(device):
    ask(device, encode_binary_frame("D", b"\x01\x02"))
    good = xor_checksum(b"Y") ^ 0x03
    assert ask(device, encode_binary_frame("X", bytes([good]))) == b"Y\n"

    bad = good ^ 0xFF
    assert ask(device, encode_binary_frame("X", bytes([bad]))) == b"N\n"


def test_fixed_responses():
    device = MockSerialTransport(SimulatorConfig(responses={"K 1": "K OK"}))
    device.open()
    assert ask(device, b"K 1\n") == b"K OK\n"
    assert ask(device, b"K 2\n") == b"\n"


def test_queued_response_wins(device):
    device.queue_response(b"custom")
    assert ask(device, b"V\n") == b"custom\n"
    assert ask(device, b"V\n") == b"V 1.2.3\n"


def test_read_without_write_is_end_of_stream(device):
    assert device.read_until() == b""


def test_injected_timeout(device):
    device.config.inject_timeout = True
    device.write(b"V\n")
    with pytest.raises(TransportTimeoutError):
        device.read_until()


def test_received_frames_recorded(device):
    ask(device, b"V\n")
    ask(device, b"S\n")
    assert device.received == [b"V\n", b"S\n"]
