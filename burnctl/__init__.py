"""
burnctl: Cancellable closed-loop actuation over live telemetry.

Features:
- Preemptible tasks: run a worker while a monitor watches a telemetry stream
- Debouncing of bursty trigger handlers
- Closed-loop burns: proportional taper or discrete PID, actuator always reset
- Exclusive actuator leases so two loops never fight over one output
- JSON/JSONL burn artifacts and optional matplotlib traces
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
