from __future__ import annotations

from typing import Protocol


class Controller(Protocol):
    """
    Protocol for throttle controllers.

    Controllers map a target and a measurement to an actuator command. They
    keep internal state across calls within one burn (integrator, initial
    delta) and are resettable between burns. They know nothing about
    streams, threads or cancellation.
    """

    def reset(self) -> None:
        """Reset controller internal state."""
        ...

    def step(self, target: float, measured: float, dt_s: float) -> float:
        """
        Compute the actuator command for the current sample.

        Args:
            target: Desired value of the controlled quantity
            measured: Latest sampled value
            dt_s: Seconds since the previous sample

        Returns:
            Actuator command, clamped to the controller's output bounds
        """
        ...
