"""
Bounded, newest-first history of visits and diagnostic log lines.

Two independent rings: recorded visits (default 20) and log entries
(default 50). Appending past capacity evicts the oldest entry. Only
reset_display() clears them, and it never touches the application state.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from .interfaces import ClockInterface

if TYPE_CHECKING:
    from .state import Transition


@dataclass(frozen=True)
class VisitRecord:
    id: int
    timestamp: datetime
    count_at_visit: int


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    text: str

    def format(self) -> str:
        return f"{self.timestamp.strftime('%H:%M:%S')}: {self.text}"


class HistoryLog:
    """Visit and log rings shown to the operator."""

    def __init__(
        self,
        clock: ClockInterface,
        visit_capacity: int = 20,
        log_capacity: int = 50,
    ):
        self._clock = clock
        self._lock = threading.Lock()
        self._visits: deque = deque(maxlen=visit_capacity)
        self._entries: deque = deque(maxlen=log_capacity)

    def record_visit(self, visit: VisitRecord) -> None:
        with self._lock:
            self._visits.appendleft(visit)

    def log(self, text: str, timestamp: Optional[datetime] = None) -> LogEntry:
        entry = LogEntry(timestamp=timestamp or self._clock.now(), text=text)
        with self._lock:
            self._entries.appendleft(entry)
        return entry

    def visits(self) -> List[VisitRecord]:
        """Recorded visits, newest first."""
        with self._lock:
            return list(self._visits)

    def entries(self) -> List[LogEntry]:
        """Log entries, newest first."""
        with self._lock:
            return list(self._entries)

    def recent_lines(self, n: int = 5) -> List[str]:
        return [e.format() for e in self.entries()[:n]]

    def reset_display(self) -> None:
        with self._lock:
            self._visits.clear()
            self._entries.clear()

    def observe(self, transition: "Transition") -> None:
        """Reconciler observer: record visits and counter resets."""
        if transition.visit is not None:
            self.record_visit(transition.visit)
            self.log(
                f"Visit recorded: {transition.current.count} of {transition.current.limit}",
                timestamp=transition.visit.timestamp,
            )
        elif transition.current.count == 0 and transition.previous.count != 0:
            self.log("Tracker reset to zero")
