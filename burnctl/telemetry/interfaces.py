from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Protocol, TypeVar

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class TelemetryStream(Protocol[T_co]):
    """
    Protocol for a subscription to a remotely computed value.

    The handle is owned by the session that subscribed and must be released
    on every exit path. After ``release()`` no other method may be called.
    """

    def get(self) -> T_co:
        """Latest known value; never blocks."""
        ...

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the remote value is updated or the timeout elapses.

        Returns:
            True if an update arrived, False on timeout.
        """
        ...

    def set_rate(self, hz: float) -> None:
        """Request a delivery rate from the remote side."""
        ...

    def release(self) -> None:
        """Unsubscribe. Idempotent."""
        ...


class TelemetryClient(Protocol):
    """
    Protocol for the remote telemetry service.

    Sources are opaque to burnctl: a procedure name, a tuple path, anything
    the client knows how to subscribe to.
    """

    def subscribe(self, source: Hashable) -> TelemetryStream[Any]:
        ...


class Actuator(Protocol):
    """
    Protocol for the single continuous output a burn drives (e.g. throttle).
    """

    def write(self, value: float) -> None:
        """Command a value in [0, 1]."""
        ...


# Comparators accepted by BurnTarget, keyed by their usual spelling
COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True, slots=True)
class BurnTarget:
    """
    Explicit description of what a burn drives toward.

    Attributes:
        source: Telemetry source to subscribe to (passed to the client).
        target: Numeric value the controlled quantity is driven toward.
        comparator: Termination test ``comparator(value, target)``; either a
                    callable or one of the strings in COMPARATORS.

    Example:
        >>> stop = BurnTarget(source="orbit.eccentricity", target=0.1, comparator=">")
        >>> stop.reached(0.2)
        True
    """
    source: Hashable
    target: float
    comparator: Callable[[Any, Any], bool] | str = "<="

    def __post_init__(self) -> None:
        if isinstance(self.comparator, str) and self.comparator not in COMPARATORS:
            raise ValueError(
                f"Unknown comparator {self.comparator!r}; "
                f"expected one of {sorted(COMPARATORS)}"
            )

    def reached(self, value: Any) -> bool:
        compare = self.comparator
        if isinstance(compare, str):
            compare = COMPARATORS[compare]
        return bool(compare(value, self.target))
