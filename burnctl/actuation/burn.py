"""
Closed-loop burns: drive an actuator until a telemetry condition holds.

Two interchangeable strategies share one session scaffold:

```
    Burn.until(target)  / Burn.until_pid(target)
        |
        +-- lease the actuator          (ActuatorBusyError if already held)
        +-- subscribe to target.source
        |
        +-- loop until the stop test holds or the token is cancelled
        |     taper: throttle = clamp(|target - v| / initial_delta), sleep 50 ms
        |     pid:   throttle = PID(target, v, dt), write only past hysteresis,
        |            sleep the rest of the sample period
        |
        +-- finally: actuator.write(0.0) once, stream.release(), lease released
        |
        v
    BurnResult (outcome, iterations, final value, optional samples)
```

Cancellation is a normal outcome (BurnOutcome.CANCELLED), logged once.
Telemetry and actuator errors propagate after the cleanup has run.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from time import perf_counter
from typing import Callable, Iterator

from burnctl.actuation.lease import DEFAULT_LEASES, LeaseRegistry
from burnctl.config import DEFAULT_TIMING, BurnConfig, LoopTiming
from burnctl.control.pid import PIDController, PIDParams
from burnctl.control.taper import TaperController
from burnctl.errors import OperationCancelled
from burnctl.runtime.cancellation import CancellationToken
from burnctl.telemetry.interfaces import (
    Actuator,
    BurnTarget,
    TelemetryClient,
    TelemetryStream,
)

logger = logging.getLogger(__name__)

# Actuator value written on every exit path
NEUTRAL = 0.0


class BurnOutcome(Enum):
    TARGET_REACHED = "target_reached"
    ALREADY_AT_TARGET = "already_at_target"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class BurnSample:
    """
    One loop iteration, recorded when a burn runs with record=True.
    """
    iteration: int          # Iteration index (0-based)
    elapsed_s: float        # Seconds since the loop started
    measured: float         # Sampled telemetry value
    command: float          # Throttle computed by the controller
    written: bool           # Whether the command was written to the actuator


@dataclass(frozen=True, slots=True)
class BurnResult:
    """
    Summary of a finished burn.

    Attributes:
        strategy: "taper" or "pid".
        outcome: Why the loop ended.
        target: Numeric target of the burn.
        iterations: Loop iterations that computed a command.
        final_value: Last telemetry value sampled by the loop (None if never sampled).
        start_time: ISO 8601 UTC wall-clock start.
        finish_time: ISO 8601 UTC wall-clock finish (after actuator reset).
        samples: Per-iteration samples; empty unless recorded.
    """
    strategy: str
    outcome: BurnOutcome
    target: float
    iterations: int
    final_value: float | None
    start_time: str
    finish_time: str
    samples: list[BurnSample] = field(default_factory=list)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Burn:
    """
    Drives one actuator toward a telemetry target.

    Only one burn may drive a given actuator at a time; the lease registry
    enforces it. The cancellation token is observed by every sleep and wait,
    so a cancel request is honoured within one poll interval (taper) or one
    sample period (PID).
    """

    def __init__(
        self,
        client: TelemetryClient,
        actuator: Actuator,
        throttle_max: float = 1.0,
        throttle_min: float = 0.05,
        token: CancellationToken | None = None,
        timing: LoopTiming = DEFAULT_TIMING,
        pid_params: PIDParams | None = None,
        leases: LeaseRegistry = DEFAULT_LEASES,
        name: str = "burn",
    ) -> None:
        """
        Raises:
            RangeError: If the throttle bounds are outside
                        0 <= throttle_min <= throttle_max <= 1.
        """
        self.config = BurnConfig.from_args(
            throttle_min=throttle_min,
            throttle_max=throttle_max,
        )
        self.client = client
        self.actuator = actuator
        self.token = token or CancellationToken(name=name)
        self.timing = timing
        self.pid_params = pid_params or PIDParams()
        self.leases = leases
        self.name = name

    # ------------------------------------------------------------------
    # Session scaffold
    # ------------------------------------------------------------------
    @contextmanager
    def _session(self, target: BurnTarget) -> Iterator[TelemetryStream[float]]:
        with self.leases.hold(self.actuator, self.name):
            stream = self.client.subscribe(target.source)
            try:
                yield stream
            finally:
                try:
                    self.actuator.write(NEUTRAL)
                finally:
                    stream.release()

    @staticmethod
    def _stop_test(
        target: BurnTarget,
        stream: TelemetryStream[float],
        predicate: Callable[[], bool] | None,
    ) -> Callable[[], bool]:
        if predicate is not None:
            return predicate
        return lambda: target.reached(stream.get())

    def _finish(
        self,
        strategy: str,
        outcome: BurnOutcome,
        target: BurnTarget,
        iterations: int,
        final_value: float | None,
        start_time: str,
        samples: list[BurnSample],
    ) -> BurnResult:
        result = BurnResult(
            strategy=strategy,
            outcome=outcome,
            target=target.target,
            iterations=iterations,
            final_value=final_value,
            start_time=start_time,
            finish_time=_now(),
            samples=samples,
        )
        logger.info(
            "Finished %s burn %s: %s after %d iterations (value=%s)",
            strategy,
            self.name,
            outcome.value,
            iterations,
            final_value,
        )
        return result

    # ------------------------------------------------------------------
    # Proportional taper
    # ------------------------------------------------------------------
    def until(
        self,
        target: BurnTarget,
        predicate: Callable[[], bool] | None = None,
        record: bool = False,
    ) -> BurnResult:
        """
        Burn with a throttle that tapers as the target is approached.

        Args:
            target: Source, numeric target and termination comparator.
            predicate: Optional stop test overriding ``target.reached``.
            record: Keep a BurnSample per iteration.

        Returns:
            BurnResult; outcome ALREADY_AT_TARGET when the burn starts with
            zero distance to target.
        """
        start_time = _now()
        samples: list[BurnSample] = []
        iterations = 0
        final_value: float | None = None
        outcome = BurnOutcome.TARGET_REACHED
        controller = TaperController(self.config)

        logger.info(
            "Starting taper burn %s toward %s on %r", self.name, target.target, target.source
        )
        with self._session(target) as stream:
            reached = self._stop_test(target, stream, predicate)
            try:
                final_value = float(stream.get())
                if controller.prime(target.target, final_value) == 0:
                    outcome = BurnOutcome.ALREADY_AT_TARGET
                else:
                    loop_start = perf_counter()
                    while True:
                        self.token.raise_if_cancelled()
                        if reached():
                            break
                        final_value = float(stream.get())
                        throttle = controller.step(target.target, final_value)
                        self.actuator.write(throttle)
                        if record:
                            samples.append(BurnSample(
                                iteration=iterations,
                                elapsed_s=perf_counter() - loop_start,
                                measured=final_value,
                                command=throttle,
                                written=True,
                            ))
                        iterations += 1
                        self.token.sleep(self.timing.poll_interval_s)
            except OperationCancelled as exc:
                outcome = BurnOutcome.CANCELLED
                logger.info("Burn %s cancelled: %s", self.name, exc.reason)

        return self._finish(
            "taper", outcome, target, iterations, final_value, start_time, samples
        )

    # ------------------------------------------------------------------
    # PID
    # ------------------------------------------------------------------
    def _await_delivery(self, stream: TelemetryStream[float]) -> None:
        """Wait (bounded, cancellable) for the first update at the new rate."""
        remaining = self.timing.settle_timeout_s
        while remaining > 0:
            self.token.raise_if_cancelled()
            chunk = min(self.timing.poll_interval_s, remaining)
            if stream.wait(timeout=chunk):
                return
            remaining -= chunk

    def until_pid(
        self,
        target: BurnTarget,
        predicate: Callable[[], bool] | None = None,
        record: bool = False,
    ) -> BurnResult:
        """
        Burn under a PID loop sampled every ``timing.sample_period_s``.

        The stream rate is raised to ``timing.sample_rate_hz`` first. The first
        iteration uses the nominal sample period as its dt. A new command is
        written only when it differs from the last written one by more than
        ``timing.hysteresis``.

        Args:
            target: Source, numeric target and termination comparator.
            predicate: Optional stop test overriding ``target.reached``.
            record: Keep a BurnSample per iteration.
        """
        start_time = _now()
        samples: list[BurnSample] = []
        iterations = 0
        final_value: float | None = None
        outcome = BurnOutcome.TARGET_REACHED
        pid = PIDController(self.pid_params)
        period = self.timing.sample_period_s

        logger.info(
            "Starting PID burn %s toward %s on %r", self.name, target.target, target.source
        )
        with self._session(target) as stream:
            reached = self._stop_test(target, stream, predicate)
            try:
                stream.set_rate(self.timing.sample_rate_hz)
                self._await_delivery(stream)

                last_written = NEUTRAL
                last_sample_at = 0.0
                loop_start = perf_counter()
                while True:
                    iter_start = perf_counter()
                    log_cycle = iterations % 100 <= 1
                    self.token.raise_if_cancelled()
                    if reached():
                        break
                    final_value = float(stream.get())

                    now = perf_counter()
                    dt_s = period if iterations == 0 else now - last_sample_at
                    last_sample_at = now
                    if log_cycle:
                        logger.debug("Iter[%d] elapsed dt: %.1fms", iterations, dt_s * 1000.0)

                    throttle = pid.step(target.target, final_value, dt_s)
                    if log_cycle:
                        logger.debug(
                            "-> PID out: %.4f | Target: %.4f | Current: %.4f",
                            throttle,
                            target.target,
                            final_value,
                        )

                    written = abs(throttle - last_written) > self.timing.hysteresis
                    if written:
                        self.actuator.write(throttle)
                        last_written = throttle
                    if record:
                        samples.append(BurnSample(
                            iteration=iterations,
                            elapsed_s=now - loop_start,
                            measured=final_value,
                            command=throttle,
                            written=written,
                        ))

                    delay = period - (perf_counter() - iter_start)
                    if log_cycle:
                        logger.debug(
                            "-> Delaying for %.1fms, time in cycle: %.1fms",
                            max(delay, 0.0) * 1000.0,
                            (perf_counter() - iter_start) * 1000.0,
                        )
                    iterations += 1
                    if delay > 0:
                        self.token.sleep(delay)
            except OperationCancelled as exc:
                outcome = BurnOutcome.CANCELLED
                logger.info("Burn %s cancelled: %s", self.name, exc.reason)

        return self._finish(
            "pid", outcome, target, iterations, final_value, start_time, samples
        )
