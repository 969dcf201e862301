"""
Interfaces for the gate link.

Abstract base classes that define contracts for all pluggable components.
This enables dependency injection and mock-based testing without hardware.
"""

from abc import ABC, abstractmethod
from typing import Optional, List
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ConnectionState(Enum):
    """Device link connection states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    UNSUPPORTED = "unsupported"


class GateMode(Enum):
    """Operating mode of the gate."""
    AUTO = "AUTO"
    MANUAL = "MANUAL"
    NORMAL = "NORMAL"


@dataclass
class PortInfo:
    """Information about a serial port."""
    device: str
    description: str
    hwid: str


class SerialPortInterface(ABC):
    """
    Abstract interface for the byte link to the gate.

    Implementations:
    - RealSerialPort: Wraps pyserial for actual hardware
    - MockSerialPort: For unit testing without hardware

    Only one read_chunk() call may be outstanding at a time.
    """

    @abstractmethod
    def open(self, port: str, baud: int, timeout: float = 0.1) -> None:
        """Open the port. Raises DeviceConnectionError on failure."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the port. Idempotent, safe if open() never succeeded."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if port is currently open."""
        pass

    @abstractmethod
    def read_chunk(self, max_bytes: int = 256) -> Optional[bytes]:
        """
        Block until bytes arrive or the read timeout elapses.

        Returns b'' on timeout or cancellation, None at end-of-stream.
        Raises DeviceConnectionError on a read failure.
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write data. Returns bytes written, raises DeviceConnectionError."""
        pass

    @abstractmethod
    def cancel_read(self) -> None:
        """Unblock a pending read_chunk() from another thread."""
        pass

    @staticmethod
    @abstractmethod
    def list_ports() -> List[PortInfo]:
        """List available serial ports."""
        pass


class ClockInterface(ABC):
    """
    Abstract interface for time operations.

    Enables deterministic testing of time-dependent logic.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get current datetime. Real clocks return timezone-aware values."""
        pass


class DevicePickerInterface(ABC):
    """
    Chooses which port the link should open.

    Raises PermissionDeniedError, NoDeviceSelectedError or NotSupportedError.
    """

    @abstractmethod
    def select(self) -> str:
        """Return the device path to open."""
        pass


class InsightServiceInterface(ABC):
    """
    Turns a usage summary into a short advisory tip.

    Raises MissingCredentialError or ServiceUnavailableError.
    """

    @abstractmethod
    def generate(
        self,
        count_today: int,
        limit: int,
        lock_duration_minutes: int,
        recent_log_lines: List[str],
    ) -> str:
        """Return the tip text."""
        pass
