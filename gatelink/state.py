"""
Authoritative application state for the gate link.

AppState is an immutable snapshot. reduce() is the pure transition function
that folds one domain event into the next snapshot. StateReconciler owns the
single live snapshot and is the only writer: the reader thread applies device
events through it, and local configuration changes (limit, lock duration)
replace the same cell, so the very next event always sees the current limit.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from .history import VisitRecord
from .interfaces import ClockInterface, ConnectionState, GateMode
from .protocol import (
    DomainEvent,
    Locked,
    ModeChanged,
    RemainingCount,
    Unlocked,
    Unrecognized,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    """Snapshot of everything the operator sees about the gate."""
    mode: GateMode = GateMode.AUTO
    is_locked: bool = False
    count: int = 0
    limit: int = 5
    lock_duration_minutes: int = 2
    lock_anchor: Optional[datetime] = None
    connection: ConnectionState = ConnectionState.DISCONNECTED

    @property
    def is_connected(self) -> bool:
        return self.connection == ConnectionState.CONNECTED

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "is_locked": self.is_locked,
            "count": self.count,
            "limit": self.limit,
            "lock_duration_minutes": self.lock_duration_minutes,
            "lock_anchor": self.lock_anchor.isoformat() if self.lock_anchor else None,
            "connection": self.connection.value,
        }


@dataclass(frozen=True)
class Transition:
    """One step of the reconciler: what changed and why."""
    previous: AppState
    current: AppState
    event: Optional[DomainEvent] = None
    visit: Optional[VisitRecord] = None

    @property
    def changed(self) -> bool:
        return self.previous != self.current


def reduce(state: AppState, event: DomainEvent, now: datetime) -> AppState:
    """Apply one domain event to a state snapshot.

    The visit count is always derived from the limit carried by ``state``,
    which is the live value at the moment the event is processed.
    """
    if isinstance(event, RemainingCount):
        count = max(0, state.limit - event.remaining)
        if event.remaining == 0:
            # A repeated "quota exhausted" must not restart a running lockout.
            anchor = state.lock_anchor if state.lock_anchor is not None else now
            return dataclasses.replace(state, count=count, is_locked=True, lock_anchor=anchor)
        return dataclasses.replace(state, count=count, is_locked=False, lock_anchor=None)

    if isinstance(event, Locked):
        anchor = state.lock_anchor if state.lock_anchor is not None else now
        return dataclasses.replace(state, is_locked=True, lock_anchor=anchor)

    if isinstance(event, Unlocked):
        return dataclasses.replace(state, is_locked=False, count=0, lock_anchor=None)

    if isinstance(event, ModeChanged):
        return dataclasses.replace(state, mode=event.mode)

    if isinstance(event, Unrecognized):
        return state

    raise TypeError(f"Unknown event type: {type(event).__name__}")


Observer = Callable[[Transition], None]


class StateReconciler:
    """
    Single owner of the live AppState.

    Thread-safe: apply() is called from the session reader thread, the
    apply_* configuration actions from whichever thread the operator drives.
    Transitions are computed and delivered to observers under one re-entrant
    lock, so observers see them in exactly the order they were applied.
    Observers must not block on other threads that use the reconciler.
    """

    def __init__(self, clock: ClockInterface, initial: Optional[AppState] = None):
        self._clock = clock
        self._state = initial or AppState()
        self._lock = threading.RLock()
        self._observers: List[Observer] = []
        self._visit_ids = itertools.count(1)

    @property
    def state(self) -> AppState:
        with self._lock:
            return self._state

    def subscribe(self, observer: Observer) -> None:
        with self._lock:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def apply(self, event: DomainEvent) -> Transition:
        """Fold a domain event into the live state and notify observers."""
        with self._lock:
            now = self._clock.now()
            previous = self._state
            current = reduce(previous, event, now)
            visit = None
            if current.count > previous.count:
                visit = VisitRecord(
                    id=next(self._visit_ids),
                    timestamp=now,
                    count_at_visit=current.count,
                )
            return self._commit(Transition(previous, current, event, visit))

    def apply_limit(self, limit: int) -> AppState:
        """Set the quota. Takes effect for the next event processed."""
        limit = max(1, int(limit))
        return self._replace(limit=limit).current

    def apply_lock_duration(self, minutes: int) -> AppState:
        """Set the lockout duration. Does not touch the lock anchor."""
        minutes = max(0, int(minutes))
        return self._replace(lock_duration_minutes=minutes).current

    def set_connection(self, connection: ConnectionState) -> AppState:
        return self._replace(connection=connection).current

    def _replace(self, **changes) -> Transition:
        with self._lock:
            previous = self._state
            current = dataclasses.replace(previous, **changes)
            return self._commit(Transition(previous, current))

    def _commit(self, transition: Transition) -> Transition:
        self._state = transition.current
        for observer in list(self._observers):
            try:
                observer(transition)
            except Exception:
                logger.exception("State observer %r failed", observer)
        return transition
