"""
In-memory trace of the frames exchanged with the device.

Keeps the most recent TX/RX frames and transport errors for post-mortem
inspection; the regular ``logging`` output only carries display strings.
"""

import threading
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional

from protocom.protocol.encoder import CONFIRMATION_GLYPH, decode_response, format_for_display


class Direction(Enum):
    TX = "TX"
    RX = "RX"
    ERR = "ERR"


@dataclass(frozen=True)
class FrameRecord:
    """One traced frame."""
    timestamp: str
    direction: Direction
    raw: bytes
    tag: str = ""
    display: str = ""
    payload_length: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "direction": self.direction.value,
            "raw_hex": self.raw.hex().upper(),
            "tag": self.tag,
            "display": self.display,
            "payload_length": self.payload_length,
            "error": self.error,
        }


def _record(direction: Direction, raw: bytes, error: Optional[str] = None) -> FrameRecord:
    stamp = datetime.now().isoformat(timespec="milliseconds")
    if error is not None or not raw:
        return FrameRecord(stamp, direction, raw, error=error)

    response = decode_response(raw)
    if response.is_confirmation:
        return FrameRecord(stamp, direction, raw, display=CONFIRMATION_GLYPH)

    return FrameRecord(
        stamp,
        direction,
        raw,
        tag=response.row[:1],
        display=format_for_display(response.row),
        payload_length=len(response.data) if response.data is not None else None,
    )


class ProtocolLogger:
    """
    Bounded, thread-safe frame trace.

    Binary payloads are never rendered, only their length.
    """

    DEFAULT_CAPACITY = 500

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self._records: Deque[FrameRecord] = deque(maxlen=capacity)
        self._counts: Counter = Counter()
        self._lock = threading.Lock()
        self.enabled = True

    def _add(self, record: FrameRecord, count_error: bool = False) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._records.append(record)
            self._counts[record.direction] += 1
            if count_error:
                self._counts["errors"] += 1

    def log_tx(self, frame: bytes) -> None:
        """Trace a frame written to the transport."""
        self._add(_record(Direction.TX, frame))

    def log_rx(self, frame: bytes) -> None:
        """Trace a frame read back; an empty read counts as an error."""
        if frame:
            self._add(_record(Direction.RX, frame))
        else:
            self._add(_record(Direction.RX, b"", error="Empty response (stream ended?)"), count_error=True)

    def log_error(self, error_msg: str, frame: Optional[bytes] = None) -> None:
        """Trace a transport failure, with the frame that triggered it."""
        self._add(_record(Direction.ERR, frame or b"", error=error_msg), count_error=True)

    def records(self, limit: Optional[int] = None) -> List[FrameRecord]:
        """Most recent records, oldest first."""
        with self._lock:
            records = list(self._records)
        return records[-limit:] if limit else records

    def get_messages(self, limit: int = 100) -> List[dict]:
        return [r.to_dict() for r in self.records(limit)]

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "total_messages": len(self._records),
                "tx_count": self._counts[Direction.TX],
                "rx_count": self._counts[Direction.RX],
                "error_count": self._counts["errors"],
                "capacity": self._records.maxlen,
                "enabled": self.enabled,
            }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._counts.clear()


_logger: Optional[ProtocolLogger] = None


def get_protocol_logger() -> ProtocolLogger:
    """Shared trace used when no logger is passed explicitly."""
    global _logger
    if _logger is None:
        _logger = ProtocolLogger()
    return _logger
