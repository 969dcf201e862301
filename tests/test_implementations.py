"""Tests for gatelink.implementations with pyserial mocked out."""

from unittest.mock import MagicMock, patch

import pytest
import serial

from gatelink.errors import DeviceConnectionError
from gatelink.implementations import RealClock, RealSerialPort
from gatelink.interfaces import ClockInterface


@pytest.fixture
def fake_serial():
    instance = MagicMock()
    instance.is_open = True
    instance.in_waiting = 0
    with patch("gatelink.implementations.serial.Serial", return_value=instance) as cls:
        yield cls, instance


class TestRealSerialPort:

    def test_open_passes_settings(self, fake_serial):
        cls, _ = fake_serial
        port = RealSerialPort()
        port.open("/dev/ttyUSB0", 9600, timeout=0.05)
        cls.assert_called_once_with("/dev/ttyUSB0", 9600, timeout=0.05)
        assert port.is_open()

    def test_open_failure_wrapped(self):
        with patch("gatelink.implementations.serial.Serial",
                   side_effect=serial.SerialException("busy")):
            port = RealSerialPort()
            with pytest.raises(DeviceConnectionError, match="busy"):
                port.open("/dev/ttyUSB0", 9600)
            assert not port.is_open()

    def test_read_takes_queued_bytes(self, fake_serial):
        _, instance = fake_serial
        instance.in_waiting = 10
        instance.read.return_value = b"LOCKED\n"
        port = RealSerialPort()
        port.open("/dev/ttyUSB0", 9600)
        assert port.read_chunk(4) == b"LOCKED\n"
        instance.read.assert_called_once_with(4)

    def test_read_error_wrapped(self, fake_serial):
        _, instance = fake_serial
        instance.read.side_effect = serial.SerialException("device reports readiness to read but returned no data")
        port = RealSerialPort()
        port.open("/dev/ttyUSB0", 9600)
        with pytest.raises(DeviceConnectionError):
            port.read_chunk()

    def test_read_when_closed(self):
        assert RealSerialPort().read_chunk() is None

    def test_write_flushes(self, fake_serial):
        _, instance = fake_serial
        instance.write.return_value = 5
        port = RealSerialPort()
        port.open("/dev/ttyUSB0", 9600)
        assert port.write(b"OPEN\n") == 5
        instance.flush.assert_called_once()

    def test_write_when_closed(self):
        with pytest.raises(DeviceConnectionError):
            RealSerialPort().write(b"OPEN\n")

    def test_cancel_and_close(self, fake_serial):
        _, instance = fake_serial
        port = RealSerialPort()
        port.open("/dev/ttyUSB0", 9600)
        port.cancel_read()
        port.close()
        instance.cancel_read.assert_called_once()
        instance.close.assert_called_once()
        assert not port.is_open()

    def test_list_ports(self):
        info = MagicMock(device="/dev/ttyUSB0", description="CP2102", hwid="USB VID:PID=10C4:EA60")
        with patch("serial.tools.list_ports.comports", return_value=[info]):
            ports = RealSerialPort.list_ports()
        assert ports[0].device == "/dev/ttyUSB0"
        assert ports[0].description == "CP2102"


def test_clock_interface_is_now_only():
    assert ClockInterface.__abstractmethods__ == frozenset({"now"})


def test_real_clock_is_timezone_aware():
    assert RealClock().now().tzinfo is not None
