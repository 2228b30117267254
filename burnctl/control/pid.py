from __future__ import annotations

import math
from dataclasses import dataclass

from burnctl.errors import RangeError


@dataclass(frozen=True, slots=True)
class PIDParams:
    """
    Parameters for PID controller.

    The integrator is unbounded unless both integrator bounds are given.
    """
    kp: float = 0.25                      # Proportional gain
    ki: float = 0.025                     # Integral gain
    kd: float = 0.0025                    # Derivative gain
    output_min: float = 0.0               # Minimum actuator command
    output_max: float = 1.0               # Maximum actuator command
    integrator_min: float | None = None   # Anti-windup: min integrator value
    integrator_max: float | None = None   # Anti-windup: max integrator value

    def __post_init__(self) -> None:
        for name in ("kp", "ki", "kd", "output_min", "output_max"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise RangeError(f"{name} must be finite (got {value!r})")
        if self.output_min > self.output_max:
            raise RangeError(
                f"output_min ({self.output_min}) must not exceed output_max ({self.output_max})"
            )
        if (self.integrator_min is None) != (self.integrator_max is None):
            raise RangeError("integrator_min and integrator_max must be given together")
        if self.integrator_min is not None and self.integrator_min > self.integrator_max:
            raise RangeError(
                f"integrator_min ({self.integrator_min}) must not exceed "
                f"integrator_max ({self.integrator_max})"
            )


class PIDController:
    """
    Positional discrete-time PID controller.

    Control law:
        e     = target - measured
        I    += e * dt
        D     = (e - e_prev) / dt        (0 on the first sample of a burn)
        u     = clamp(kp*e + ki*I + kd*D, output_min, output_max)

    The output is always within [output_min, output_max]. The integrator is
    not clamped by default, so long saturation can wind it up; set
    integrator_min/max to bound it.

    A sample with dt <= 0 leaves the state untouched and returns the previous
    output.
    """

    def __init__(self, params: PIDParams | None = None):
        """
        Initialize PID controller.

        Args:
            params: Controller parameters (uses defaults if None)
        """
        self.params = params or PIDParams()
        self._integrator: float = 0.0
        self._last_error: float = 0.0
        self._output: float = self._clamp(0.0)
        self._primed: bool = False

    @property
    def integrator(self) -> float:
        return self._integrator

    @property
    def last_error(self) -> float:
        return self._last_error

    @property
    def output(self) -> float:
        """Most recent command (or the clamped zero before the first step)."""
        return self._output

    def reset(self) -> None:
        """Reset controller state."""
        self._integrator = 0.0
        self._last_error = 0.0
        self._output = self._clamp(0.0)
        self._primed = False

    def _clamp(self, value: float) -> float:
        return max(self.params.output_min, min(self.params.output_max, value))

    def step(self, target: float, measured: float, dt_s: float) -> float:
        """
        Compute PID control output.

        Args:
            target: Setpoint
            measured: Current measurement
            dt_s: Seconds since the previous sample (a fixed nominal period
                  on the first sample of a burn)

        Returns:
            Clamped actuator command
        """
        if dt_s <= 0:
            return self._output

        error = target - measured

        # Proportional term
        p_term = self.params.kp * error

        # Integral term, clamped only when anti-windup bounds are configured
        self._integrator += error * dt_s
        if self.params.integrator_min is not None:
            self._integrator = max(self.params.integrator_min,
                                   min(self.params.integrator_max, self._integrator))
        i_term = self.params.ki * self._integrator

        # Derivative term; no prior sample on the first call
        if self._primed:
            d_error = (error - self._last_error) / dt_s
        else:
            d_error = 0.0
        d_term = self.params.kd * d_error

        self._output = self._clamp(p_term + i_term + d_term)

        # Store for next iteration
        self._last_error = error
        self._primed = True

        return self._output
