from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from burnctl.errors import ActuatorBusyError
from burnctl.telemetry.interfaces import Actuator


class LeaseRegistry:
    """
    Exclusive write access to actuators, one holder per actuator object.

    Two control loops driving the same output would fight each other; a burn
    holds a lease on its actuator for the whole session so a second burn on
    the same actuator fails fast instead.

    Example:
        >>> leases = LeaseRegistry()
        >>> with leases.hold(throttle, "deorbit"):
        ...     leases.holder(throttle)
        'deorbit'
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Keyed by identity; the lease keeps the actuator referenced while held
        self._holders: dict[int, tuple[Actuator, str]] = {}

    def holder(self, actuator: Actuator) -> str | None:
        with self._lock:
            entry = self._holders.get(id(actuator))
            return entry[1] if entry is not None else None

    def acquire(self, actuator: Actuator, holder: str) -> None:
        """
        Raises:
            ActuatorBusyError: If another holder already has the actuator.
        """
        with self._lock:
            entry = self._holders.get(id(actuator))
            if entry is not None:
                raise ActuatorBusyError(
                    f"actuator {actuator!r} is already driven by {entry[1]!r}"
                )
            self._holders[id(actuator)] = (actuator, holder)

    def release(self, actuator: Actuator) -> None:
        with self._lock:
            self._holders.pop(id(actuator), None)

    @contextmanager
    def hold(self, actuator: Actuator, holder: str) -> Iterator[Actuator]:
        self.acquire(actuator, holder)
        try:
            yield actuator
        finally:
            self.release(actuator)


# Process-wide registry used by Burn unless one is injected
DEFAULT_LEASES = LeaseRegistry()
