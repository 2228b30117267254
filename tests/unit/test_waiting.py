from __future__ import annotations

import threading

import pytest

from burnctl.errors import OperationCancelled
from burnctl.runtime.cancellation import CancellationToken
from burnctl.telemetry.waiting import wait_for, wait_for_value, watch, within_tolerance


def test_wait_for_returns_immediately_when_true(telemetry):
    stream = telemetry.subscribe("altitude")
    assert wait_for(stream, lambda v: v > 1000.0) == 2000.0
    stream.release()


def test_wait_for_returns_value_that_satisfied_predicate(telemetry):
    stream = telemetry.subscribe("altitude")
    timer = threading.Timer(0.05, telemetry.publish, args=("altitude", 900.0))
    timer.start()
    try:
        value = wait_for(stream, lambda v: v < 1000.0, poll_interval_s=0.01)
    finally:
        timer.cancel()
        stream.release()
    assert value == 900.0


def test_wait_for_value(telemetry):
    stream = telemetry.subscribe("abort")
    timer = threading.Timer(0.05, telemetry.publish, args=("abort", True))
    timer.start()
    try:
        assert wait_for_value(stream, True, poll_interval_s=0.01) is True
    finally:
        timer.cancel()
        stream.release()


def test_wait_for_observes_cancellation(telemetry):
    stream = telemetry.subscribe("abort")
    token = CancellationToken()
    timer = threading.Timer(0.05, token.cancel, args=("shutdown",))
    timer.start()
    try:
        with pytest.raises(OperationCancelled, match="shutdown"):
            wait_for(stream, lambda v: v is True, token, poll_interval_s=0.01)
    finally:
        timer.cancel()
        stream.release()


def test_watch_releases_stream_on_success(telemetry):
    assert watch(telemetry, "altitude", lambda v: v == 2000.0) == 2000.0
    assert telemetry.open_streams("altitude") == 0


def test_watch_releases_stream_on_cancel(telemetry):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        watch(telemetry, "abort", lambda v: v is True, token)
    assert telemetry.subscriptions("abort") == 1
    assert telemetry.open_streams("abort") == 0


def test_within_tolerance_scalar():
    near = within_tolerance(100.0, 0.5)
    assert near(100.4)
    assert near(99.6)
    assert not near(100.5)


def test_within_tolerance_vector_scalar_tolerance():
    aligned = within_tolerance((0.0, -1.0, 0.0), 0.05)
    assert aligned((0.01, -0.98, 0.0))
    assert not aligned((0.1, -0.98, 0.0))
    assert not aligned((0.0, -1.0))


def test_within_tolerance_vector_per_component():
    aligned = within_tolerance((1.0, 2.0), (0.1, 1.0))
    assert aligned((1.05, 2.9))
    assert not aligned((1.2, 2.0))


@pytest.mark.parametrize(
    "target, tolerance",
    [(1.0, (0.1, 0.1)), ((1.0, 2.0), (0.1, 0.1, 0.1))],
)
def test_within_tolerance_rejects_mismatched_shapes(target, tolerance):
    with pytest.raises(ValueError):
        within_tolerance(target, tolerance)
