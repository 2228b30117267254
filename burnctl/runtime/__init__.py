from __future__ import annotations

from burnctl.runtime.cancellation import CancellationToken
from burnctl.runtime.debounce import Debouncer
from burnctl.runtime.preemptible import PreemptibleTask, TaskState

__all__ = [
    "CancellationToken",
    "Debouncer",
    "PreemptibleTask",
    "TaskState",
]
