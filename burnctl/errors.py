"""
Error taxonomy for burnctl.

Cancellation is not a fault: OperationCancelled marks a recognised terminal
condition that still runs cleanup. TaskPreempted is the flavour raised into a
worker whose PreemptibleTask was aborted; it never escapes PreemptibleTask.start().
"""

from __future__ import annotations


class BurnCtlError(Exception):
    """Base class for all burnctl errors."""


class RangeError(BurnCtlError, ValueError):
    """A gain, bound or timing parameter is outside its valid domain."""


class OperationCancelled(BurnCtlError):
    """A cancellation-aware wait observed its token being cancelled."""

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


class TaskPreempted(OperationCancelled):
    """The worker of a PreemptibleTask was preempted by its monitor."""


class TransientRemoteError(BurnCtlError):
    """Telemetry read or actuator write failed; retry policy belongs to the caller."""


class StreamClosedError(TransientRemoteError):
    """A telemetry stream was used after release()."""


class ActuatorBusyError(BurnCtlError):
    """Another session already holds write access to the actuator."""
