from __future__ import annotations

from burnctl.telemetry.interfaces import (
    COMPARATORS,
    Actuator,
    BurnTarget,
    TelemetryClient,
    TelemetryStream,
)
from burnctl.telemetry.local import LocalStream, LocalTelemetry
from burnctl.telemetry.waiting import wait_for, wait_for_value, watch, within_tolerance

__all__ = [
    "Actuator",
    "BurnTarget",
    "COMPARATORS",
    "LocalStream",
    "LocalTelemetry",
    "TelemetryClient",
    "TelemetryStream",
    "wait_for",
    "wait_for_value",
    "watch",
    "within_tolerance",
]
