"""Tests for gatelink.history.HistoryLog."""

from gatelink.history import HistoryLog, VisitRecord
from gatelink.mocks import MockClock
from gatelink.protocol import RemainingCount, Unlocked
from gatelink.state import AppState, StateReconciler


def _visit(i, clock):
    return VisitRecord(id=i, timestamp=clock.now(), count_at_visit=i)


def test_log_is_newest_first_and_bounded():
    clock = MockClock()
    history = HistoryLog(clock, log_capacity=3)
    for i in range(5):
        history.log(f"line {i}")
    assert [e.text for e in history.entries()] == ["line 4", "line 3", "line 2"]


def test_visits_bounded():
    clock = MockClock()
    history = HistoryLog(clock, visit_capacity=20)
    for i in range(1, 26):
        history.record_visit(_visit(i, clock))
    visits = history.visits()
    assert len(visits) == 20
    assert visits[0].id == 25
    assert visits[-1].id == 6


def test_entry_format():
    clock = MockClock()
    clock.advance(3723)
    entry = HistoryLog(clock).log("Device: LOCKED")
    assert entry.format() == "01:02:03: Device: LOCKED"


def test_recent_lines():
    history = HistoryLog(MockClock())
    for i in range(8):
        history.log(str(i))
    assert [line.split(": ")[1] for line in history.recent_lines(5)] == ["7", "6", "5", "4", "3"]


def test_reset_display_clears_only_history():
    clock = MockClock()
    history = HistoryLog(clock)
    reconciler = StateReconciler(clock, AppState(limit=5))
    reconciler.subscribe(history.observe)
    reconciler.apply(RemainingCount(3))

    history.reset_display()

    assert history.visits() == []
    assert history.entries() == []
    assert reconciler.state.count == 2


def test_observe_records_visits_and_resets():
    clock = MockClock()
    history = HistoryLog(clock)
    reconciler = StateReconciler(clock, AppState(limit=5))
    reconciler.subscribe(history.observe)

    reconciler.apply(RemainingCount(4))
    reconciler.apply(RemainingCount(3))
    reconciler.apply(Unlocked())

    assert [v.count_at_visit for v in history.visits()] == [2, 1]
    assert [e.text for e in history.entries()] == [
        "Tracker reset to zero",
        "Visit recorded: 2 of 5",
        "Visit recorded: 1 of 5",
    ]
