from __future__ import annotations

from burnctl.control.interfaces import Controller
from burnctl.control.pid import PIDController, PIDParams
from burnctl.control.taper import TaperController, taper_throttle

__all__ = [
    "Controller",
    "PIDController",
    "PIDParams",
    "TaperController",
    "taper_throttle",
]
