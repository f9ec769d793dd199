"""
Serial port enumeration for the --list-ports option.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import serial.tools.list_ports


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortInfo:
    """One serial port candidate for a ProtoCom device."""

    name: str
    description: str
    vid: Optional[int] = None
    pid: Optional[int] = None

    @property
    def is_usb(self) -> bool:
        """USB-UART bridges report vendor and product ids."""
        return self.vid is not None

    def describe(self) -> str:
        """Single console line: name, description and USB ids if known."""
        line = f"{self.name}\t{self.description}"
        if self.is_usb:
            line += f"\t[{self.vid:04X}:{self.pid or 0:04X}]"
        return line


def list_available_ports(usb_only: bool = False) -> List[PortInfo]:
    """
    Enumerate serial ports known to the operating system.

    Args:
        usb_only: Skip ports without USB vendor/product ids (built-in UARTs,
            Bluetooth SPP ports).

    Returns:
        Ports sorted by device name.
    """
    found = [
        PortInfo(
            name=p.device,
            description=p.description or "n/a",
            vid=p.vid,
            pid=p.pid,
        )
        for p in serial.tools.list_ports.comports()
    ]
    if usb_only:
        found = [p for p in found if p.is_usb]

    logger.debug(f"{len(found)} serial port(s) found")
    return sorted(found, key=lambda p: p.name)
