"""
Real implementations of interfaces for production use.

These classes wrap actual system resources (serial ports, the system clock)
and implement the abstract interfaces.
"""

from typing import Optional, List
from datetime import datetime
import logging

import serial
import serial.tools.list_ports

from .errors import DeviceConnectionError
from .interfaces import SerialPortInterface, ClockInterface, PortInfo

logger = logging.getLogger(__name__)


class RealSerialPort(SerialPortInterface):
    """
    Real serial port implementation using pyserial.
    """

    def __init__(self):
        self._serial: Optional[serial.Serial] = None

    def open(self, port: str, baud: int, timeout: float = 0.1) -> None:
        try:
            self._serial = serial.Serial(port, baud, timeout=timeout)
        except (serial.SerialException, OSError, ValueError) as e:
            self._serial = None
            raise DeviceConnectionError(f"Could not open {port}: {e}") from e

    def close(self) -> None:
        if self._serial:
            try:
                self._serial.close()
            except (serial.SerialException, OSError) as e:
                logger.debug("Ignoring error while closing port: %s", e)
            self._serial = None

    def is_open(self) -> bool:
        if self._serial is None:
            return False
        try:
            return self._serial.is_open
        except Exception:
            return False

    def read_chunk(self, max_bytes: int = 256) -> Optional[bytes]:
        port = self._serial
        if port is None or not port.is_open:
            return None
        try:
            # Block for one byte (up to the timeout), then take whatever else is queued.
            size = min(max(port.in_waiting, 1), max_bytes)
            return port.read(size)
        except (serial.SerialException, OSError) as e:
            raise DeviceConnectionError(f"Read failed: {e}") from e
        except TypeError:
            # pyserial raises TypeError when the port is closed under a blocked read
            return None

    def write(self, data: bytes) -> int:
        port = self._serial
        if port is None or not port.is_open:
            raise DeviceConnectionError("Port is not open")
        try:
            written = port.write(data)
            port.flush()
            return written or 0
        except (serial.SerialException, OSError) as e:
            raise DeviceConnectionError(f"Write failed: {e}") from e

    def cancel_read(self) -> None:
        port = self._serial
        if port is None:
            return
        try:
            port.cancel_read()
        except (serial.SerialException, OSError, AttributeError) as e:
            logger.debug("cancel_read failed: %s", e)

    @staticmethod
    def list_ports() -> List[PortInfo]:
        ports = []
        for p in serial.tools.list_ports.comports():
            ports.append(PortInfo(
                device=p.device,
                description=p.description or "",
                hwid=p.hwid or "",
            ))
        return ports


class RealClock(ClockInterface):
    """
    Real clock implementation using system time.
    """

    def now(self) -> datetime:
        # Aware local time: differences stay correct across DST changes.
        return datetime.now().astimezone()
