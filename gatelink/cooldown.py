"""
Lockout countdown.

The remaining lockout time is derived from the wall-clock lock anchor, never
from message arrival, so it stays correct if the device goes quiet. A
background ticker runs only while a lockout with a non-zero duration is in
progress. The countdown never clears the anchor itself; only an unlock or a
non-zero REMAINING message from the device does that.
"""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime
from typing import Callable, List, Optional

from .interfaces import ClockInterface
from .state import Transition

logger = logging.getLogger(__name__)


def remaining_seconds(
    anchor: Optional[datetime],
    duration_minutes: int,
    now: datetime,
) -> int:
    """Seconds of lockout left; 0 when no lockout is running."""
    if anchor is None or duration_minutes <= 0:
        return 0
    # A clock stepped backwards must not extend the lockout.
    elapsed = max(0, math.floor((now - anchor).total_seconds()))
    return max(0, duration_minutes * 60 - elapsed)


class CooldownClock:
    """Cancelable 1 Hz ticker fed by reconciler transitions.

    Wire it with ``reconciler.subscribe(cooldown.observe)``. Subscribers
    registered with subscribe() receive the remaining seconds on every tick.
    """

    def __init__(self, clock: ClockInterface, period: float = 1.0):
        self._clock = clock
        self._period = period
        self._lock = threading.Lock()
        self._anchor: Optional[datetime] = None
        self._duration_minutes = 0
        self._subscribers: List[Callable[[int], None]] = []
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def subscribe(self, callback: Callable[[int], None]) -> None:
        self._subscribers.append(callback)

    def remaining(self) -> int:
        with self._lock:
            anchor, duration = self._anchor, self._duration_minutes
        return remaining_seconds(anchor, duration, self._clock.now())

    def observe(self, transition: Transition) -> None:
        """Reconciler observer: start or stop ticking as the lockout changes."""
        state = transition.current
        with self._lock:
            self._anchor = state.lock_anchor
            self._duration_minutes = state.lock_duration_minutes
            should_run = state.lock_anchor is not None and state.lock_duration_minutes > 0
            is_running = bool(self._thread and self._thread.is_alive())
            if should_run and not is_running:
                self._start_locked()
            elif not should_run and is_running:
                self._stop_locked()
        if should_run != is_running:
            self.tick()

    def tick(self) -> int:
        """Compute and publish the remaining seconds once."""
        remaining = self.remaining()
        self._emit(remaining)
        return remaining

    def stop(self) -> None:
        """Stop ticking and wait for the ticker thread to exit."""
        with self._lock:
            thread = self._thread
            self._stop_locked()
        if thread and thread is not threading.current_thread():
            thread.join(timeout=2.0)

    def _start_locked(self) -> None:
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run,
            args=(stop_event,),
            name="gatelink-cooldown",
            daemon=True,
        )
        self._thread.start()

    def _stop_locked(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._thread = None

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._period):
            try:
                self.tick()
            except Exception:
                logger.exception("Cooldown tick failed")

    def _emit(self, remaining: int) -> None:
        for callback in list(self._subscribers):
            try:
                callback(remaining)
            except Exception:
                logger.exception("Cooldown subscriber %r failed", callback)
