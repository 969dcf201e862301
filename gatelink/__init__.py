"""
Gate Link - snack gate device link

Frames the gate's serial byte stream into protocol messages, interprets
them as domain events and reconciles them into one authoritative state.
"""

from .interfaces import (
    ConnectionState,
    GateMode,
    PortInfo,
    SerialPortInterface,
    ClockInterface,
    DevicePickerInterface,
    InsightServiceInterface,
)
from .errors import (
    GateLinkError,
    DeviceConnectionError,
    ParseError,
    UnsupportedPlatformError,
    ServiceError,
    MissingCredentialError,
    ServiceUnavailableError,
    DeviceSelectionError,
    PermissionDeniedError,
    NoDeviceSelectedError,
    NotSupportedError,
)
from .framing import LineFramer
from .protocol import (
    RemainingCount,
    Locked,
    Unlocked,
    ModeChanged,
    Unrecognized,
    Command,
    parse_line,
    encode_command,
)
from .state import AppState, Transition, StateReconciler, reduce
from .cooldown import CooldownClock, remaining_seconds
from .history import HistoryLog, VisitRecord, LogEntry
from .session import Session
from .controller import GateController

__all__ = [
    "ConnectionState",
    "GateMode",
    "PortInfo",
    "SerialPortInterface",
    "ClockInterface",
    "DevicePickerInterface",
    "InsightServiceInterface",
    "GateLinkError",
    "DeviceConnectionError",
    "ParseError",
    "UnsupportedPlatformError",
    "ServiceError",
    "MissingCredentialError",
    "ServiceUnavailableError",
    "DeviceSelectionError",
    "PermissionDeniedError",
    "NoDeviceSelectedError",
    "NotSupportedError",
    "LineFramer",
    "RemainingCount",
    "Locked",
    "Unlocked",
    "ModeChanged",
    "Unrecognized",
    "Command",
    "parse_line",
    "encode_command",
    "AppState",
    "Transition",
    "StateReconciler",
    "reduce",
    "CooldownClock",
    "remaining_seconds",
    "HistoryLog",
    "VisitRecord",
    "LogEntry",
    "Session",
    "GateController",
]
