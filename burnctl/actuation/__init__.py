from __future__ import annotations

from burnctl.actuation.artifacts import load_burn_result, write_burn_artifacts
from burnctl.actuation.burn import (
    NEUTRAL,
    Burn,
    BurnOutcome,
    BurnResult,
    BurnSample,
)
from burnctl.actuation.lease import DEFAULT_LEASES, LeaseRegistry

__all__ = [
    "Burn",
    "BurnOutcome",
    "BurnResult",
    "BurnSample",
    "DEFAULT_LEASES",
    "LeaseRegistry",
    "NEUTRAL",
    "load_burn_result",
    "write_burn_artifacts",
]
