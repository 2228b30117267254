from __future__ import annotations

import threading
import time

import pytest

from burnctl.errors import RangeError
from burnctl.runtime.debounce import Debouncer


class Calls:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.names: list[str] = []

    def make(self, name: str):
        def action() -> None:
            with self._lock:
                self.names.append(name)
        return action

    def snapshot(self) -> list[str]:
        with self._lock:
            return list(self.names)


@pytest.fixture
def debouncer():
    d = Debouncer(name="test")
    yield d
    d.dispose()


def test_single_action_fires_after_delay(debouncer, wait_until):
    calls = Calls()
    debouncer.debounce(calls.make("A"), delay_s=0.05, tick_s=0.01)
    assert debouncer.pending
    assert wait_until(lambda: calls.snapshot() == ["A"])
    assert not debouncer.pending


def test_later_action_replaces_pending_one(debouncer, wait_until):
    calls = Calls()
    debouncer.debounce(calls.make("A"), delay_s=0.25, tick_s=0.01)
    time.sleep(0.1)
    debouncer.debounce(calls.make("B"), delay_s=0.25, tick_s=0.01)
    assert wait_until(lambda: calls.snapshot() != [])
    time.sleep(0.3)
    assert calls.snapshot() == ["B"]


def test_burst_collapses_to_one_call(debouncer, wait_until):
    calls = Calls()
    for i in range(20):
        debouncer.debounce(calls.make(str(i)), delay_s=0.05, tick_s=0.01)
    assert wait_until(lambda: calls.snapshot() != [])
    time.sleep(0.1)
    assert calls.snapshot() == ["19"]


def test_failing_action_does_not_stop_timer(debouncer, wait_until):
    calls = Calls()

    def boom() -> None:
        calls.make("boom")()
        raise RuntimeError("action failed")

    debouncer.debounce(boom, delay_s=0.02, tick_s=0.01)
    assert wait_until(lambda: calls.snapshot() == ["boom"])
    assert debouncer.running

    debouncer.debounce(calls.make("after"), delay_s=0.02, tick_s=0.01)
    assert wait_until(lambda: calls.snapshot() == ["boom", "after"])


def test_cancel_drops_pending_action(debouncer):
    calls = Calls()
    debouncer.debounce(calls.make("A"), delay_s=0.05, tick_s=0.01)
    assert debouncer.cancel() is True
    assert debouncer.cancel() is False
    time.sleep(0.15)
    assert calls.snapshot() == []


def test_dispose_is_idempotent_and_stops_timer():
    calls = Calls()
    d = Debouncer()
    d.debounce(calls.make("A"), delay_s=0.1, tick_s=0.01)
    d.dispose()
    d.dispose()
    assert not d.running
    time.sleep(0.2)
    assert calls.snapshot() == []
    with pytest.raises(RuntimeError):
        d.debounce(calls.make("B"))


def test_dispose_without_start():
    d = Debouncer()
    d.dispose()
    assert not d.running


def test_context_manager_disposes(wait_until):
    calls = Calls()
    with Debouncer() as d:
        d.debounce(calls.make("A"), delay_s=0.01, tick_s=0.005)
        assert wait_until(lambda: calls.snapshot() == ["A"])
    assert not d.running


@pytest.mark.parametrize("delay_s, tick_s", [(-0.1, 0.01), (0.1, 0.0), (0.1, -1.0)])
def test_invalid_timing_rejected(debouncer, delay_s, tick_s):
    with pytest.raises(RangeError):
        debouncer.debounce(lambda: None, delay_s=delay_s, tick_s=tick_s)
