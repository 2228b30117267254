"""
Cancellation-aware waits over telemetry streams.

``wait_for`` layers a bounded poll over the stream's blocking ``wait()`` so a
cancellation request is observed within one poll interval even while no
telemetry arrives.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Callable, Hashable, Sequence, TypeVar

from burnctl.config import DEFAULT_TIMING
from burnctl.telemetry.interfaces import TelemetryClient, TelemetryStream

# Only needed for annotations; avoids a telemetry <-> runtime import cycle
if TYPE_CHECKING:
    from burnctl.runtime.cancellation import CancellationToken

T = TypeVar("T")


def wait_for(
    stream: TelemetryStream[T],
    predicate: Callable[[T], bool],
    token: CancellationToken | None = None,
    poll_interval_s: float = DEFAULT_TIMING.poll_interval_s,
) -> T:
    """
    Block until ``predicate(stream.get())`` is true and return that value.

    Args:
        stream: Subscription to evaluate. Not released here.
        predicate: Condition over the streamed value.
        token: Optional cancellation token, checked every poll interval.
        poll_interval_s: Upper bound on a single blocking wait.

    Raises:
        OperationCancelled: If ``token`` is cancelled first.
    """
    while True:
        if token is not None:
            token.raise_if_cancelled()
        value = stream.get()
        if predicate(value):
            return value
        stream.wait(timeout=poll_interval_s)


def wait_for_value(
    stream: TelemetryStream[T],
    expected: T,
    token: CancellationToken | None = None,
    poll_interval_s: float = DEFAULT_TIMING.poll_interval_s,
) -> T:
    """Block until the stream reports a value equal to ``expected``."""
    return wait_for(stream, lambda value: value == expected, token, poll_interval_s)


def watch(
    client: TelemetryClient,
    source: Hashable,
    predicate: Callable[[Any], bool],
    token: CancellationToken | None = None,
    poll_interval_s: float = DEFAULT_TIMING.poll_interval_s,
) -> Any:
    """
    Subscribe to ``source``, wait for ``predicate`` and always release the stream.
    """
    stream = client.subscribe(source)
    try:
        return wait_for(stream, predicate, token, poll_interval_s)
    finally:
        stream.release()


def within_tolerance(
    target: float | Sequence[float],
    tolerance: float | Sequence[float],
) -> Callable[[Any], bool]:
    """
    Build a predicate that is true when a value lies within ``tolerance`` of ``target``.

    Works component-wise for tuples (e.g. direction vectors); a scalar
    tolerance applies to every component.

    Example:
        >>> aligned = within_tolerance((0.0, -1.0, 0.0), 0.05)
        >>> aligned((0.01, -0.98, 0.0))
        True
    """
    if isinstance(target, (int, float)):
        if not isinstance(tolerance, (int, float)):
            raise ValueError("scalar target requires a scalar tolerance")
        return lambda value: abs(float(value) - target) < tolerance

    targets = tuple(float(t) for t in target)
    if isinstance(tolerance, (int, float)):
        tolerances = (float(tolerance),) * len(targets)
    else:
        tolerances = tuple(float(t) for t in tolerance)
    if len(tolerances) != len(targets):
        raise ValueError(
            f"tolerance has {len(tolerances)} components, target has {len(targets)}"
        )

    def predicate(value: Sequence[float]) -> bool:
        if len(value) != len(targets):
            return False
        return all(
            math.fabs(v - t) < tol for v, t, tol in zip(value, targets, tolerances)
        )

    return predicate
