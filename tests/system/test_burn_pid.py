from __future__ import annotations

import threading

import pytest

from burnctl.actuation.burn import NEUTRAL, Burn, BurnOutcome
from burnctl.config import LoopTiming
from burnctl.control.pid import PIDParams
from burnctl.runtime.cancellation import CancellationToken
from burnctl.telemetry.interfaces import BurnTarget
from burnctl.telemetry.local import LocalTelemetry

SPEED_UP = BurnTarget(source="speed", target=50.0, comparator=">=")


class TrackingTelemetry(LocalTelemetry):
    """LocalTelemetry that keeps every stream it hands out."""

    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.streams = []

    def subscribe(self, source):
        stream = super().subscribe(source)
        self.streams.append(stream)
        return stream


@pytest.fixture
def telemetry() -> TrackingTelemetry:
    return TrackingTelemetry({"speed": 0.0})


@pytest.fixture
def ramp(telemetry):
    """Background thread raising speed by one unit every 2 ms."""
    stop = threading.Event()

    def run() -> None:
        while not stop.wait(0.002):
            telemetry.publish("speed", telemetry.value("speed") + 1.0)

    thread = threading.Thread(target=run, daemon=True)
    yield thread
    stop.set()
    thread.join(timeout=1.0)


def test_pid_burn_reaches_target(telemetry, ramp, actuator, leases, fast_timing):
    burn = Burn(telemetry, actuator, timing=fast_timing, leases=leases,
                pid_params=PIDParams(kp=0.02, ki=0.0, kd=0.0))
    ramp.start()

    result = burn.until_pid(SPEED_UP)

    assert result.outcome is BurnOutcome.TARGET_REACHED
    assert result.strategy == "pid"
    assert result.iterations > 0
    assert telemetry.value("speed") >= 50.0
    assert actuator.snapshot()[-1] == NEUTRAL
    assert telemetry.streams[0].rate_hz == fast_timing.sample_rate_hz
    assert telemetry.open_streams("speed") == 0
    assert leases.holder(actuator) is None


def test_pid_writes_only_past_hysteresis(telemetry, ramp, actuator, leases, fast_timing):
    burn = Burn(telemetry, actuator, timing=fast_timing, leases=leases,
                pid_params=PIDParams(kp=0.02, ki=0.0, kd=0.0))
    ramp.start()

    result = burn.until_pid(SPEED_UP, record=True)

    last_written = NEUTRAL
    for sample in result.samples:
        assert sample.written == (abs(sample.command - last_written) > fast_timing.hysteresis)
        if sample.written:
            last_written = sample.command
    written = [s.command for s in result.samples if s.written]
    assert actuator.snapshot() == written + [NEUTRAL]
    assert all(0.0 <= s.command <= 1.0 for s in result.samples)


def test_first_iteration_uses_nominal_period(telemetry, actuator, leases, fast_timing):
    calls = {"n": 0}

    def one_iteration() -> bool:
        calls["n"] += 1
        return calls["n"] > 1

    burn = Burn(telemetry, actuator, timing=fast_timing, leases=leases,
                pid_params=PIDParams(kp=0.0, ki=1.0, kd=0.0))
    result = burn.until_pid(SPEED_UP, predicate=one_iteration, record=True)

    assert result.iterations == 1
    # I = e * dt with e = 50 and dt = sample period
    assert result.samples[0].command == pytest.approx(50.0 * fast_timing.sample_period_s)


def test_small_commands_are_never_written(telemetry, actuator, leases, fast_timing):
    calls = {"n": 0}

    def five_iterations() -> bool:
        calls["n"] += 1
        return calls["n"] > 5

    # kp * e = 0.0008 * 50 = 0.04, inside the hysteresis band around zero
    burn = Burn(telemetry, actuator, timing=fast_timing, leases=leases,
                pid_params=PIDParams(kp=0.0008, ki=0.0, kd=0.0))
    result = burn.until_pid(SPEED_UP, predicate=five_iterations, record=True)

    assert result.iterations == 5
    assert not any(s.written for s in result.samples)
    assert actuator.snapshot() == [NEUTRAL]


def test_cancel_mid_loop_resets_and_releases(telemetry, actuator, leases, fast_timing, wait_until):
    token = CancellationToken(name="pid")
    burn = Burn(telemetry, actuator, token=token, timing=fast_timing, leases=leases)

    outcome: list[BurnOutcome] = []
    runner = threading.Thread(target=lambda: outcome.append(burn.until_pid(SPEED_UP).outcome))
    runner.start()
    # Default gains saturate at full throttle: one write, then held
    assert wait_until(lambda: actuator.snapshot() == [1.0])
    token.cancel("abort pressed")
    runner.join(timeout=2.0)

    assert not runner.is_alive()
    assert outcome == [BurnOutcome.CANCELLED]
    assert actuator.snapshot() == [1.0, NEUTRAL]
    assert telemetry.open_streams("speed") == 0
    assert leases.holder(actuator) is None


def test_cancel_during_settle_wait(telemetry, actuator, leases):
    timing = LoopTiming(poll_interval_s=0.01, sample_period_s=0.005, settle_timeout_s=5.0)
    token = CancellationToken()
    burn = Burn(telemetry, actuator, token=token, timing=timing, leases=leases)
    timer = threading.Timer(0.05, token.cancel)
    timer.start()
    try:
        result = burn.until_pid(SPEED_UP)
    finally:
        timer.cancel()

    assert result.outcome is BurnOutcome.CANCELLED
    assert result.iterations == 0
    assert actuator.snapshot() == [NEUTRAL]
