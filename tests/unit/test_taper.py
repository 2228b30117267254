from __future__ import annotations

import pytest

from burnctl.config import BurnConfig
from burnctl.control.taper import TaperController, taper_throttle


def test_taper_is_remaining_fraction():
    assert taper_throttle(1000.0, 1500.0, 1000.0, 0.0, 1.0) == pytest.approx(0.5)


def test_taper_clamps_to_bounds():
    assert taper_throttle(1000.0, 2000.0, 1000.0, 0.05, 0.8) == 0.8
    assert taper_throttle(1000.0, 1001.0, 1000.0, 0.05, 1.0) == 0.05
    # Overshoot past the start gives more than the initial delta
    assert taper_throttle(1000.0, 3000.0, 1000.0, 0.0, 1.0) == 1.0


def test_zero_initial_delta_returns_minimum():
    assert taper_throttle(5.0, 5.0, 0.0, 0.05, 1.0) == 0.05


def test_controller_primes_on_first_step():
    ctl = TaperController(BurnConfig(throttle_min=0.0, throttle_max=1.0))
    assert ctl.initial_delta is None
    assert ctl.step(1000.0, 2000.0) == 1.0
    assert ctl.initial_delta == 1000.0
    assert ctl.step(1000.0, 1250.0) == pytest.approx(0.25)


def test_controller_is_non_increasing_while_approaching():
    ctl = TaperController()
    values = [2000.0 - 50.0 * i for i in range(21)]
    throttles = [ctl.step(1000.0, v) for v in values]
    assert all(a >= b for a, b in zip(throttles, throttles[1:]))
    assert throttles[0] == 1.0
    assert throttles[-1] == 0.05


def test_reset_forgets_initial_delta():
    ctl = TaperController()
    ctl.prime(10.0, 20.0)
    ctl.reset()
    assert ctl.initial_delta is None
