"""
Device selection and platform capability check.

The picker decides which serial port the link opens: an explicitly
configured device, or the first USB serial adapter found by port
enumeration. check_platform_support() is run once at startup, before any
connect attempt; a runtime that cannot cancel a blocked read cannot host a
session at all.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional

import serial

from .errors import (
    NoDeviceSelectedError,
    NotSupportedError,
    PermissionDeniedError,
    UnsupportedPlatformError,
)
from .interfaces import DevicePickerInterface, PortInfo

logger = logging.getLogger(__name__)

# USB-serial bridges found on ESP32/Arduino gate controllers, most specific first
USB_SERIAL_PATTERNS = [
    "usbmodem",
    "cp210",
    "silicon_labs",
    "silabs",
    "ch340",
    "ch341",
    "wch",
    "ftdi",
    "ft232",
    "usbserial",
    "ttyusb",
    "ttyacm",
    "usb",
]


def check_platform_support(serial_class: Optional[type] = None) -> None:
    """Raise UnsupportedPlatformError if this runtime cannot drive the link."""
    serial_class = serial_class if serial_class is not None else getattr(serial, "Serial", None)
    if serial_class is None:
        raise UnsupportedPlatformError("pyserial has no backend for this platform")
    if not callable(getattr(serial_class, "cancel_read", None)):
        raise UnsupportedPlatformError(
            f"{serial_class.__module__}.{serial_class.__name__} cannot cancel a pending read"
        )


class PortPicker(DevicePickerInterface):
    """
    Pick the configured port, or auto-detect one when set to "auto".
    """

    def __init__(
        self,
        port: Optional[str] = "auto",
        list_ports: Optional[Callable[[], List[PortInfo]]] = None,
    ):
        self._port = port
        if list_ports is None:
            from .implementations import RealSerialPort
            list_ports = RealSerialPort.list_ports
        self._list_ports = list_ports

    def select(self) -> str:
        if self._port and self._port.lower() != "auto":
            device = self._port
        else:
            device = self._detect()
        self._check_access(device)
        return device

    def _detect(self) -> str:
        try:
            ports = self._list_ports()
        except (OSError, NotImplementedError, ImportError) as e:
            raise NotSupportedError(f"Port enumeration unavailable: {e}") from e

        for pattern in USB_SERIAL_PATTERNS:
            for p in ports:
                device_lower = p.device.lower()
                desc_lower = p.description.lower()
                hwid_lower = p.hwid.lower()

                if (pattern in device_lower or
                        pattern in desc_lower or
                        pattern in hwid_lower):
                    # Skip Bluetooth and debug ports
                    if "bluetooth" in desc_lower or "debug-console" in device_lower:
                        continue
                    logger.info("Auto-detected gate port: %s (%s)", p.device, p.description)
                    return p.device

        raise NoDeviceSelectedError(
            "No USB serial device found"
            + (f" (available: {', '.join(p.device for p in ports)})" if ports else "")
        )

    @staticmethod
    def _check_access(device: str) -> None:
        # COM ports on Windows are not filesystem paths; only check real nodes.
        if os.path.exists(device) and not os.access(device, os.R_OK | os.W_OK):
            raise PermissionDeniedError(
                f"No read/write access to {device} (is the user in the dialout group?)"
            )
