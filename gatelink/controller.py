"""
Gate controller.

Ties the link components together and exposes the operator actions:

- Session: serial port + reader thread
- LineFramer / parse_line: bytes -> lines -> domain events
- StateReconciler: the authoritative AppState
- CooldownClock: lockout countdown
- HistoryLog: visits and diagnostic log shown to the operator
- EventEmitter: optional JSONL trail

Device messages are the only source of truth for lock state and visit
count. Local actions change the limit, the lock duration and the mode.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .config import GateConfig
from .cooldown import CooldownClock
from .device_picker import PortPicker, check_platform_support
from .errors import (
    DeviceConnectionError,
    DeviceSelectionError,
    ServiceError,
    ServiceUnavailableError,
    UnsupportedPlatformError,
)
from .event_emitter import EventEmitter
from .framing import LineFramer
from .history import HistoryLog
from .implementations import RealClock, RealSerialPort
from .insight import OpenAIInsightService, fallback_message
from .interfaces import (
    ClockInterface,
    ConnectionState,
    DevicePickerInterface,
    GateMode,
    InsightServiceInterface,
    SerialPortInterface,
)
from .protocol import (
    Command,
    ModeChanged,
    Unrecognized,
    limit_command,
    locktime_command,
    mode_for_command,
    parse_line,
)
from .session import Session
from .state import AppState, StateReconciler

logger = logging.getLogger(__name__)


class GateController:
    """
    Operator-facing facade over one gate link.

    At most one Session exists at a time; a new one is only opened after the
    previous one has been fully torn down.
    """

    def __init__(
        self,
        serial_port: SerialPortInterface,
        clock: ClockInterface,
        picker: DevicePickerInterface,
        config: Optional[GateConfig] = None,
        insight: Optional[InsightServiceInterface] = None,
        emitter: Optional[EventEmitter] = None,
        platform_check: Callable[[], None] = check_platform_support,
        cooldown_period: float = 1.0,
    ):
        self._serial = serial_port
        self._clock = clock
        self._picker = picker
        self._config = config or GateConfig()
        self._insight = insight
        self._emitter = emitter

        self._session: Optional[Session] = None
        self._session_lock = threading.Lock()
        self._framer = LineFramer()
        self._last_insight: Optional[str] = None
        self._unsupported_reason: Optional[str] = None

        self.reconciler = StateReconciler(
            clock=clock,
            initial=AppState(
                limit=max(1, self._config.default_limit),
                lock_duration_minutes=max(0, self._config.default_lock_minutes),
            ),
        )
        self.history = HistoryLog(
            clock=clock,
            visit_capacity=self._config.visit_capacity,
            log_capacity=self._config.log_capacity,
        )
        self.cooldown = CooldownClock(clock=clock, period=cooldown_period)

        self.reconciler.subscribe(self.history.observe)
        self.reconciler.subscribe(self.cooldown.observe)
        if self._emitter is not None:
            self.reconciler.subscribe(self._emitter.observe)

        try:
            platform_check()
        except UnsupportedPlatformError as e:
            self._unsupported_reason = str(e)
            logger.error("Serial link unsupported on this platform: %s", e)
            self.reconciler.set_connection(ConnectionState.UNSUPPORTED)

    @classmethod
    def from_config(cls, config: GateConfig) -> "GateController":
        """Build a controller wired to real hardware."""
        clock = RealClock()
        emitter = EventEmitter(clock, config.events_path) if config.events_path else None
        return cls(
            serial_port=RealSerialPort(),
            clock=clock,
            picker=PortPicker(config.port),
            config=config,
            insight=OpenAIInsightService(
                api_key=config.api_key,
                model=config.insight_model,
                base_url=config.insight_base_url,
            ),
            emitter=emitter,
        )

    # -- read-only views ---------------------------------------------------

    @property
    def state(self) -> AppState:
        return self.reconciler.state

    @property
    def supported(self) -> bool:
        return self._unsupported_reason is None

    @property
    def unsupported_reason(self) -> Optional[str]:
        return self._unsupported_reason

    @property
    def last_insight(self) -> Optional[str]:
        return self._last_insight

    def status(self) -> dict:
        """Snapshot for display: state, countdown and link counters."""
        session = self._session
        return {
            "title": self._config.title,
            "state": self.state.to_dict(),
            "cooldown_remaining_s": self.cooldown.remaining(),
            "port": session.port_name if session else None,
            "bytes_received": session.bytes_received if session else 0,
            "lines_received": session.lines_received if session else 0,
            "visits": len(self.history.visits()),
        }

    # -- connection --------------------------------------------------------

    def connect(self) -> bool:
        """Open a session. Returns True when connected.

        Raises UnsupportedPlatformError if the platform cannot host a link.
        Selection and open failures are logged and return False.
        """
        if not self.supported:
            raise UnsupportedPlatformError(self._unsupported_reason)

        with self._session_lock:
            if self._session is not None and not self._session.closed:
                self.history.log("Notice: already connected")
                return True
            # A session that died on the reader thread may still need its teardown finished.
            self._teardown_locked()

            self.reconciler.set_connection(ConnectionState.CONNECTING)
            try:
                port_name = self._picker.select()
            except DeviceSelectionError as e:
                self._connect_failed(f"Error: device selection failed: {e}", e)
                return False

            session = Session(
                serial_port=self._serial,
                port_name=port_name,
                baud=self._config.baud,
                on_line=lambda line: self._handle_line(session, line),
                on_error=lambda exc: self._handle_link_lost(session, f"Error: {exc}"),
                on_end=lambda: self._handle_link_lost(session, "Error: Connection lost"),
                framer=self._framer,
                read_timeout=self._config.read_timeout,
            )

            try:
                session.open()
            except DeviceConnectionError as e:
                session.close()
                self._connect_failed(f"Error: {e}", e)
                return False

            self._session = session
            if self._emitter is not None:
                self._emitter.set_session_id(self._clock.now().strftime("gate_%Y-%m-%d_%H-%M-%S"))
            # Mark connected before the reader runs so an immediate link loss wins.
            self.reconciler.set_connection(ConnectionState.CONNECTED)
            self.history.log("Secure link established")
            self._emit("connected", {"port": port_name, "baud": self._config.baud})
            logger.info("Connected to gate on %s", port_name)
            session.start()
        return True

    def disconnect(self) -> None:
        """Tear down the current session. Always completes."""
        with self._session_lock:
            had_session = self._session is not None
            self._teardown_locked()
        if had_session:
            self.reconciler.set_connection(ConnectionState.DISCONNECTED)
            self.history.log("Disconnected")
            self._emit("disconnected", {"reason": "operator"})

    def shutdown(self) -> None:
        self.disconnect()
        self.cooldown.stop()

    def _teardown_locked(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def _connect_failed(self, message: str, error: Exception) -> None:
        logger.error("Connect failed: %s", error)
        self.reconciler.set_connection(ConnectionState.DISCONNECTED)
        self.history.log(message)
        self._emit("connect_failed", {"error": str(error)}, level="error")

    # -- inbound -----------------------------------------------------------

    def _handle_line(self, session: Session, line: str) -> None:
        if session is not self._session:
            return
        self.history.log(f"Device: {line}")
        self._emit("line", {"line": line})

        event = parse_line(line)
        if isinstance(event, Unrecognized) and event.reason:
            logger.warning("Dropped malformed message %r (%s)", line, event.reason)
        self.reconciler.apply(event)

    def _handle_link_lost(self, session: Session, message: str) -> None:
        """Reader-thread failure: mark disconnected, no automatic reconnect."""
        session.close()
        if session is not self._session:
            return
        self.reconciler.set_connection(ConnectionState.DISCONNECTED)
        self.history.log(message)
        self._emit("disconnected", {"reason": message}, level="error")

    # -- outbound ----------------------------------------------------------

    def send_command(self, command: str) -> bool:
        """Send one command, fire-and-forget. Returns True if it was written."""
        command = command.strip()
        session = self._session
        state = self.state
        if session is None or session.closed or not state.is_connected:
            self.history.log("Notice: Connect device first")
            return False

        if command.upper() == Command.OPEN and (state.is_locked or state.mode == GateMode.AUTO):
            reason = "gate is locked" if state.is_locked else "gate is in AUTO mode"
            self.history.log(f"Notice: OPEN ignored, {reason}")
            return False

        try:
            session.send(command)
        except DeviceConnectionError as e:
            logger.error("Write of %r failed: %s", command, e)
            self.history.log("Transmission failed")
            self._handle_link_lost(session, f"Error: {e}")
            return False

        self.history.log(f"Command sent: {command}")
        self._emit("command", {"command": command})

        mode = mode_for_command(command)
        if mode is not None:
            self.reconciler.apply(ModeChanged(mode))
        return True

    def set_mode(self, mode: GateMode) -> bool:
        return self.send_command(mode.value)

    def open_gate(self) -> bool:
        return self.send_command(Command.OPEN)

    def unlock(self) -> bool:
        return self.send_command(Command.UNLOCK)

    def apply_limit(self, limit: int) -> AppState:
        """Update the live quota, then tell the device."""
        state = self.reconciler.apply_limit(limit)
        self.send_command(limit_command(state.limit))
        return state

    def apply_lock_duration(self, minutes: int) -> AppState:
        """Update the live lockout duration, then tell the device."""
        state = self.reconciler.apply_lock_duration(minutes)
        self.send_command(locktime_command(state.lock_duration_minutes))
        return state

    # -- insight & display -------------------------------------------------

    def request_insight(self) -> str:
        """Ask the insight service for a tip; degrade to a fallback on failure."""
        state = self.state
        try:
            if self._insight is None:
                raise ServiceUnavailableError("No insight service configured")
            text = self._insight.generate(
                count_today=state.count,
                limit=state.limit,
                lock_duration_minutes=state.lock_duration_minutes,
                recent_log_lines=self.history.recent_lines(5),
            )
        except ServiceError as e:
            logger.warning("Insight request failed: %s", e)
            self.history.log(f"Insight unavailable: {e}")
            text = fallback_message(e)
        self._last_insight = text
        return text

    def reset_display(self) -> None:
        """Clear visits, log and the last tip. Application state is untouched."""
        self.history.reset_display()
        self._last_insight = None

    def _emit(self, event_type: str, data: dict, level: str = "info") -> None:
        if self._emitter is None:
            return
        try:
            self._emitter.emit(event_type, data, level=level)
        except OSError as e:
            logger.warning("Could not write event %s: %s", event_type, e)
