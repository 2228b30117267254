"""
Shared fixtures: an in-process telemetry service, a recording actuator and
fast loop timing so concurrency tests finish quickly.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

import pytest

from burnctl.actuation.lease import LeaseRegistry
from burnctl.config import LoopTiming
from burnctl.telemetry.local import LocalTelemetry


class RecordingActuator:
    """Actuator that records every write; optionally fails on a given write."""

    def __init__(self, fail_on_write: int | None = None) -> None:
        self._lock = threading.Lock()
        self.writes: list[float] = []
        self._fail_on_write = fail_on_write

    def write(self, value: float) -> None:
        with self._lock:
            if self._fail_on_write is not None and len(self.writes) == self._fail_on_write:
                self._fail_on_write = None
                raise RuntimeError("actuator write failed")
            self.writes.append(value)

    @property
    def value(self) -> float | None:
        with self._lock:
            return self.writes[-1] if self.writes else None

    def snapshot(self) -> list[float]:
        with self._lock:
            return list(self.writes)


def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll ``condition`` until true or timeout; returns the final result."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return condition()


@pytest.fixture
def telemetry() -> LocalTelemetry:
    return LocalTelemetry({"altitude": 2000.0, "abort": False})


@pytest.fixture
def actuator() -> RecordingActuator:
    return RecordingActuator()


@pytest.fixture
def leases() -> LeaseRegistry:
    return LeaseRegistry()


@pytest.fixture
def fast_timing() -> LoopTiming:
    return LoopTiming(
        poll_interval_s=0.01,
        sample_period_s=0.005,
        sample_rate_hz=200.0,
        settle_timeout_s=0.05,
        hysteresis=0.05,
        unwind_timeout_s=0.5,
    )


@pytest.fixture
def failing_actuator() -> RecordingActuator:
    """Actuator whose second write (index 1) raises."""
    return RecordingActuator(fail_on_write=1)


@pytest.fixture(name="wait_until")
def wait_until_fixture() -> Callable[..., bool]:
    return wait_until
