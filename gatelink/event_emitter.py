"""
Event trail for the gate link.

Writes JSONL events (inbound lines, commands, state transitions, connection
changes) to disk so other processes can tail them. Diagnostic only: nothing
is ever read back into application state.
"""

from __future__ import annotations

import json
import os
import threading
from typing import TYPE_CHECKING, Any, Optional

import portalocker

from .interfaces import ClockInterface

if TYPE_CHECKING:
    from .state import Transition


class EventEmitter:
    """Append-only JSONL event emitter with simple sequence tracking."""

    def __init__(self, clock: ClockInterface, events_path: str) -> None:
        self._clock = clock
        self._events_path = events_path
        self._sequence = 0
        self._session_id: Optional[str] = None
        self._lock = threading.Lock()

        events_dir = os.path.dirname(events_path) or "."
        os.makedirs(events_dir, exist_ok=True)
        self._sequence = self._load_last_sequence()

    @property
    def events_path(self) -> str:
        return self._events_path

    def set_session_id(self, session_id: Optional[str]) -> None:
        self._session_id = session_id

    def emit(self, event_type: str, data: Optional[dict[str, Any]] = None, level: str = "info") -> dict[str, Any]:
        # Sequence order must match file order across the reader and operator threads.
        with self._lock:
            self._sequence += 1
            payload = {
                "schema_version": 1,
                "sequence": self._sequence,
                "timestamp": self._clock.now().isoformat(),
                "type": event_type,
                "level": level,
                "session_id": self._session_id,
                "data": data or {},
            }
            self._append_line(json.dumps(payload, sort_keys=True))
        return payload

    def observe(self, transition: "Transition") -> None:
        """Reconciler observer: one ``state`` event per real change."""
        if not transition.changed and transition.visit is None:
            return
        data: dict[str, Any] = {
            "cause": type(transition.event).__name__ if transition.event is not None else "local",
            "state": transition.current.to_dict(),
        }
        if transition.visit is not None:
            data["visit"] = {
                "id": transition.visit.id,
                "count": transition.visit.count_at_visit,
                "timestamp": transition.visit.timestamp.isoformat(),
            }
        self.emit("state", data)

    def _append_line(self, content: str) -> None:
        with open(self._events_path, "a", encoding="utf-8") as f:
            portalocker.lock(f, portalocker.LOCK_EX)
            try:
                f.write(content)
                if not content.endswith("\n"):
                    f.write("\n")
                f.flush()
            finally:
                portalocker.unlock(f)

    def _load_last_sequence(self) -> int:
        if not os.path.exists(self._events_path):
            return 0

        try:
            with open(self._events_path, "rb") as f:
                f.seek(0, os.SEEK_END)
                size = f.tell()
                if size == 0:
                    return 0

                # Read the last line efficiently.
                offset = min(size, 4096)
                f.seek(-offset, os.SEEK_END)
                chunk = f.read().splitlines()
                if not chunk:
                    return 0
                last_line = chunk[-1].decode("utf-8", errors="replace")
        except OSError:
            return 0

        try:
            data = json.loads(last_line)
            return int(data.get("sequence", 0) or 0)
        except (ValueError, TypeError, AttributeError):
            return 0
