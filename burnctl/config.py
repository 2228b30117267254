from __future__ import annotations

import math
from dataclasses import dataclass

from burnctl.errors import RangeError


def _require_unit_interval(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise RangeError(f"{name} must be between 0 and 1 (got {value!r})")


# slots are used to enforce good interface hygiene, disables dynamic attribute creation.
@dataclass(frozen=True, slots=True)
class BurnConfig:
    """
    BurnConfig

    Throttle bounds applied by the proportional-taper strategy.

    Params:
    - throttle_min (float) : lowest throttle commanded while the burn runs
    - throttle_max (float) : highest throttle commanded while the burn runs

    Both must satisfy 0 <= throttle_min <= throttle_max <= 1.
    """
    throttle_min: float = 0.05
    throttle_max: float = 1.0

    def __post_init__(self) -> None:
        _require_unit_interval("throttle_min", self.throttle_min)
        _require_unit_interval("throttle_max", self.throttle_max)
        if self.throttle_min > self.throttle_max:
            raise RangeError(
                f"throttle_min ({self.throttle_min}) must not exceed "
                f"throttle_max ({self.throttle_max})"
            )

    @staticmethod
    def from_args(*, throttle_min: float, throttle_max: float) -> "BurnConfig":
        return BurnConfig(
            throttle_min=float(throttle_min),
            throttle_max=float(throttle_max),
        )


@dataclass(frozen=True, slots=True)
class LoopTiming:
    """
    Timing constants shared by the monitor, the taper loop and the PID loop.
    """
    poll_interval_s: float = 0.05    # Monitor poll and taper sleep (s)
    sample_period_s: float = 0.010   # PID loop cadence (s)
    sample_rate_hz: float = 200.0    # Stream rate requested by the PID loop
    settle_timeout_s: float = 0.5    # Wait for first delivery after raising the rate
    hysteresis: float = 0.05         # Minimum throttle change before a write
    unwind_timeout_s: float = 1.0    # Wait for a preempted worker to unwind

    def __post_init__(self) -> None:
        for name in (
            "poll_interval_s",
            "sample_period_s",
            "sample_rate_hz",
            "settle_timeout_s",
            "unwind_timeout_s",
        ):
            value = getattr(self, name)
            if not (value > 0 and math.isfinite(value)):
                raise RangeError(f"{name} must be a positive finite number (got {value!r})")
        if not (self.hysteresis >= 0 and math.isfinite(self.hysteresis)):
            raise RangeError(f"hysteresis must be >= 0 (got {self.hysteresis!r})")


DEFAULT_TIMING = LoopTiming()
