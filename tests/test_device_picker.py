"""Tests for gatelink.device_picker."""

import pytest

from gatelink.device_picker import PortPicker, check_platform_support
from gatelink.errors import (
    NoDeviceSelectedError,
    NotSupportedError,
    PermissionDeniedError,
    UnsupportedPlatformError,
)
from gatelink.interfaces import PortInfo


def _ports(*entries):
    return lambda: [PortInfo(*e) for e in entries]


class TestPlatformCheck:

    def test_pyserial_supported(self):
        check_platform_support()

    def test_missing_cancel_read(self):
        class OldSerial:
            pass

        with pytest.raises(UnsupportedPlatformError):
            check_platform_support(OldSerial)


class TestPortPicker:

    def test_explicit_port(self):
        picker = PortPicker("COM7", list_ports=_ports())
        assert picker.select() == "COM7"

    def test_auto_detect_prefers_usb_bridge(self):
        picker = PortPicker("auto", list_ports=_ports(
            ("/dev/ttyS0", "n/a", "n/a"),
            ("/dev/ttyUSB0", "CP2102 USB to UART Bridge", "USB VID:PID=10C4:EA60"),
        ))
        assert picker.select() == "/dev/ttyUSB0"

    def test_auto_detect_skips_bluetooth(self):
        picker = PortPicker(None, list_ports=_ports(
            ("/dev/cu.Bluetooth-Incoming-Port", "Bluetooth usb", ""),
            ("/dev/cu.usbmodem1101", "USB JTAG", ""),
        ))
        assert picker.select() == "/dev/cu.usbmodem1101"

    def test_nothing_found(self):
        picker = PortPicker("auto", list_ports=_ports(("/dev/ttyS0", "n/a", "n/a")))
        with pytest.raises(NoDeviceSelectedError, match="/dev/ttyS0"):
            picker.select()

    def test_enumeration_unavailable(self):
        def broken():
            raise OSError("no sysfs")

        with pytest.raises(NotSupportedError):
            PortPicker("auto", list_ports=broken).select()

    def test_permission_denied(self, tmp_path, monkeypatch):
        node = tmp_path / "ttyUSB9"
        node.write_text("")
        monkeypatch.setattr("gatelink.device_picker.os.access", lambda path, mode: False)
        with pytest.raises(PermissionDeniedError):
            PortPicker(str(node), list_ports=_ports()).select()
