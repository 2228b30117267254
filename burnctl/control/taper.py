from __future__ import annotations

from burnctl.config import BurnConfig


def taper_throttle(
    target: float,
    measured: float,
    initial_delta: float,
    throttle_min: float,
    throttle_max: float,
) -> float:
    """
    Throttle proportional to the remaining fraction of the initial distance.

    ``|target - measured| / initial_delta`` clamped to [throttle_min, throttle_max].
    A zero initial delta means the burn started on target: the result is
    throttle_min.
    """
    if initial_delta <= 0:
        return throttle_min
    fraction = abs(target - measured) / initial_delta
    return max(throttle_min, min(throttle_max, fraction))


class TaperController:
    """
    Tapering proportional controller.

    The first sample of a burn fixes the initial distance to target; every
    later command is that sample's remaining fraction, so throttle starts at
    throttle_max and tapers toward throttle_min as the target is approached.
    dt_s is accepted for Controller compatibility and ignored.
    """

    def __init__(self, config: BurnConfig | None = None):
        self.config = config or BurnConfig()
        self._initial_delta: float | None = None

    @property
    def initial_delta(self) -> float | None:
        return self._initial_delta

    def reset(self) -> None:
        """Forget the initial distance."""
        self._initial_delta = None

    def prime(self, target: float, measured: float) -> float:
        """Record the initial distance to target and return it."""
        self._initial_delta = abs(target - measured)
        return self._initial_delta

    def step(self, target: float, measured: float, dt_s: float = 0.0) -> float:
        if self._initial_delta is None:
            self.prime(target, measured)
        return taper_throttle(
            target,
            measured,
            self._initial_delta,
            self.config.throttle_min,
            self.config.throttle_max,
        )
