"""Shared pytest fixtures for gatelink tests."""

from __future__ import annotations

import time

import pytest

from gatelink.config import GateConfig
from gatelink.controller import GateController
from gatelink.mocks import MockClock, MockDevicePicker, MockInsightService, MockSerialPort


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll until predicate() is truthy. Returns the final result."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def port():
    return MockSerialPort()


@pytest.fixture
def picker():
    return MockDevicePicker("/dev/ttyUSB0")


@pytest.fixture
def insight():
    return MockInsightService()


@pytest.fixture
def controller(port, clock, picker, insight):
    ctl = GateController(
        serial_port=port,
        clock=clock,
        picker=picker,
        config=GateConfig(read_timeout=0.01),
        insight=insight,
        platform_check=lambda: None,
        cooldown_period=0.01,
    )
    yield ctl
    ctl.shutdown()


@pytest.fixture
def connected(controller):
    assert controller.connect() is True
    return controller
