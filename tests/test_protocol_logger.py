"""Unit tests for the frame trace."""

from protocom.protocol.logger import Direction, ProtocolLogger, get_protocol_logger


def test_tx_rx_recorded():
    plog = ProtocolLogger()
    plog.log_tx(b"Pspeed=20\n")
    plog.log_rx(b"Y\n")

    tx, rx = plog.get_messages()
    assert tx["direction"] == "TX"
    assert tx["raw_hex"] == "5073706565643D32300A"
    assert tx["tag"] == "P"
    assert tx["display"] == "P speed=20"
    assert tx["payload_length"] is None
    assert rx["direction"] == "RX"
    assert rx["display"] == "Y"


def test_binary_frames_redacted():
    plog = ProtocolLogger()
    plog.log_tx(b"D\x02AB\n")
    plog.log_rx(b"Z\x02\x01\x02\n")

    tx, rx = plog.records()
    assert tx.display == "D <binary>"
    assert tx.payload_length == 2
    assert rx.display == "Z 0102"


def test_confirmation_display():
    plog = ProtocolLogger()
    plog.log_rx(b"\n")
    assert plog.records()[0].display == "*"


def test_empty_read_counts_as_error():
    plog = ProtocolLogger()
    plog.log_rx(b"")
    stats = plog.get_stats()
    assert stats["rx_count"] == 1
    assert stats["error_count"] == 1
    assert plog.records()[0].error


def test_error_entry():
    plog = ProtocolLogger()
    plog.log_error("Simulated timeout", b"V\n")
    record = plog.records()[0]
    assert record.direction is Direction.ERR
    assert record.error == "Simulated timeout"
    assert record.raw == b"V\n"
    assert plog.get_stats()["error_count"] == 1


def test_buffer_is_bounded():
    plog = ProtocolLogger(capacity=3)
    for i in range(5):
        plog.log_tx(f"T {i}\n".encode("ascii"))

    records = plog.records()
    assert len(records) == 3
    assert records[-1].display == "T 4"
    assert plog.records(limit=1) == records[-1:]
    assert plog.get_stats()["tx_count"] == 5


def test_disabled_logger_records_nothing():
    plog = ProtocolLogger()
    plog.enabled = False
    plog.log_tx(b"V\n")
    assert plog.records() == []
    assert plog.get_stats()["tx_count"] == 0


def test_clear():
    plog = ProtocolLogger()
    plog.log_tx(b"V\n")
    plog.clear()
    assert plog.get_stats()["total_messages"] == 0
    assert plog.get_stats()["tx_count"] == 0


def test_global_instance():
    assert get_protocol_logger() is get_protocol_logger()
