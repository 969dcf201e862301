"""
Mock implementations for testing.

These classes implement the abstract interfaces with in-memory behavior
suitable for unit testing without hardware.
"""

from typing import Optional, List
from datetime import datetime, timedelta
from collections import deque
import threading

from .errors import (
    DeviceConnectionError,
    NoDeviceSelectedError,
)
from .interfaces import (
    SerialPortInterface, ClockInterface, DevicePickerInterface,
    InsightServiceInterface, PortInfo,
)


class MockSerialPort(SerialPortInterface):
    """
    Mock serial port for testing.

    Provides a queue-based simulation of serial communication. Reads block
    (up to the open() timeout) like a real port, so the session reader thread
    can be exercised for real.
    Test code can inject data with inject_bytes()/inject_line() and read sent
    data with get_sent().
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._is_open = False
        self._port = ""
        self._baud = 0
        self._timeout = 0.1
        self._rx_buffer: deque = deque()
        self._tx_buffer: List[bytes] = []
        self._cancelled = False
        self._fail_on_open = False
        self._fail_on_write = False
        self._read_error: Optional[str] = None
        self._end_of_stream = False
        self._open_count = 0
        self._close_count = 0

    def open(self, port: str, baud: int, timeout: float = 0.1) -> None:
        if self._fail_on_open:
            raise DeviceConnectionError(f"Could not open {port}")
        with self._cond:
            self._port = port
            self._baud = baud
            self._timeout = timeout
            self._is_open = True
            self._end_of_stream = False
            self._open_count += 1

    def close(self) -> None:
        with self._cond:
            if self._is_open:
                self._close_count += 1
            self._is_open = False
            self._cond.notify_all()

    def is_open(self) -> bool:
        return self._is_open

    def read_chunk(self, max_bytes: int = 256) -> Optional[bytes]:
        with self._cond:
            if not self._rx_buffer and self._is_open and not self._cancelled \
                    and self._read_error is None and not self._end_of_stream:
                self._cond.wait(self._timeout)

            if self._cancelled:
                self._cancelled = False
                return b""
            if self._read_error is not None:
                message, self._read_error = self._read_error, None
                raise DeviceConnectionError(message)
            if self._rx_buffer:
                chunk = self._rx_buffer.popleft()
                if len(chunk) > max_bytes:
                    self._rx_buffer.appendleft(chunk[max_bytes:])
                    chunk = chunk[:max_bytes]
                return chunk
            if not self._is_open or self._end_of_stream:
                return None
            return b""

    def write(self, data: bytes) -> int:
        if not self._is_open:
            raise DeviceConnectionError("Port is not open")
        if self._fail_on_write:
            raise DeviceConnectionError("Write failed")
        self._tx_buffer.append(data)
        return len(data)

    def cancel_read(self) -> None:
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    @staticmethod
    def list_ports() -> List[PortInfo]:
        return []

    # Test helper methods

    @property
    def port(self) -> str:
        return self._port

    @property
    def open_count(self) -> int:
        return self._open_count

    @property
    def close_count(self) -> int:
        return self._close_count

    def inject_line(self, line: str) -> None:
        """Inject a line into the receive buffer (for testing)."""
        self.inject_bytes((line + "\n").encode())

    def inject_bytes(self, data: bytes) -> None:
        """Inject raw bytes into the receive buffer as one chunk."""
        with self._cond:
            self._rx_buffer.append(data)
            self._cond.notify_all()

    def inject_read_error(self, message: str = "device disconnected") -> None:
        """Make the next read fail with DeviceConnectionError."""
        with self._cond:
            self._read_error = message
            self._cond.notify_all()

    def end_stream(self) -> None:
        """Signal end-of-stream once the receive buffer is drained."""
        with self._cond:
            self._end_of_stream = True
            self._cond.notify_all()

    def pending_rx(self) -> int:
        with self._cond:
            return len(self._rx_buffer)

    def get_sent(self) -> List[bytes]:
        """Get all data sent via write() (for testing)."""
        return self._tx_buffer.copy()

    def clear_sent(self) -> None:
        """Clear the sent buffer."""
        self._tx_buffer.clear()

    def set_fail_on_open(self, fail: bool) -> None:
        """Make open() fail (for testing error handling)."""
        self._fail_on_open = fail

    def set_fail_on_write(self, fail: bool) -> None:
        """Make write() fail (for testing error handling)."""
        self._fail_on_write = fail


class MockClock(ClockInterface):
    """
    Controllable clock for testing.

    Time can be advanced manually for deterministic testing of
    time-dependent behavior.
    """

    def __init__(self, start_time: Optional[datetime] = None):
        self._current_time = start_time or datetime(2025, 1, 1, 0, 0, 0)

    def now(self) -> datetime:
        return self._current_time

    # Test helper methods

    def advance(self, seconds: float) -> None:
        """Advance time by specified seconds."""
        self._current_time += timedelta(seconds=seconds)


class MockDevicePicker(DevicePickerInterface):
    """Picker that returns a fixed port or raises a preset error."""

    def __init__(self, port: str = "/dev/ttyUSB0", error: Optional[Exception] = None):
        self._port = port
        self._error = error
        self.calls = 0

    def select(self) -> str:
        self.calls += 1
        if self._error is not None:
            raise self._error
        if not self._port:
            raise NoDeviceSelectedError("No device selected")
        return self._port

    def set_error(self, error: Optional[Exception]) -> None:
        self._error = error


class MockInsightService(InsightServiceInterface):
    """Insight service returning canned text and recording its inputs."""

    def __init__(self, text: str = "Keep snacks small and steady.", error: Optional[Exception] = None):
        self._text = text
        self._error = error
        self.requests: List[dict] = []

    def generate(
        self,
        count_today: int,
        limit: int,
        lock_duration_minutes: int,
        recent_log_lines: List[str],
    ) -> str:
        self.requests.append({
            "count_today": count_today,
            "limit": limit,
            "lock_duration_minutes": lock_duration_minutes,
            "recent_log_lines": list(recent_log_lines),
        })
        if self._error is not None:
            raise self._error
        return self._text

    def set_error(self, error: Optional[Exception]) -> None:
        self._error = error
