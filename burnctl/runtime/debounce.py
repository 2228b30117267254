"""
Debouncing of bursty trigger handlers.

A UI button or telemetry callback can fire many times for one user intent.
Debouncer collapses such a burst into a single delayed call of the most
recent action.

The timer is an owned background thread: started by the first debounce(),
stopped by dispose() (or on leaving a ``with`` block). It ticks every
``tick_s`` and counts the pending action down; each debounce() replaces the
pending action and restarts the countdown. At most one action is ever armed.

Example:
    >>> with Debouncer(name="stage-button") as debouncer:
    ...     for _ in range(5):
    ...         debouncer.debounce(stage_next, delay_s=0.25, tick_s=0.01)
    ...     time.sleep(0.5)   # stage_next runs once
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from burnctl.errors import RangeError

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Collapses repeated debounce() calls into one delayed execution.

    Actions run on the timer thread. An action that raises is logged and
    cleared; the timer keeps running.
    """

    def __init__(self, name: str = "debouncer") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._action: Callable[[], None] | None = None
        self._remaining_s = 0.0
        self._tick_s = 0.01
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._disposed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._action is not None

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def debounce(
        self,
        action: Callable[[], None],
        delay_s: float = 0.25,
        tick_s: float = 0.01,
    ) -> None:
        """
        Arm ``action`` to run after ``delay_s``, replacing any pending action.

        Raises:
            RangeError: If delay_s is negative or tick_s is not positive.
            RuntimeError: If the debouncer has been disposed.
        """
        if delay_s < 0:
            raise RangeError(f"delay_s must be >= 0 (got {delay_s!r})")
        if tick_s <= 0:
            raise RangeError(f"tick_s must be > 0 (got {tick_s!r})")

        with self._lock:
            if self._disposed:
                raise RuntimeError(f"debouncer {self.name!r} has been disposed")
            self._action = action
            self._remaining_s = delay_s
            self._tick_s = tick_s
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run,
                    name=f"{self.name}-timer",
                    daemon=True,
                )
                self._thread.start()

    def cancel(self) -> bool:
        """Drop the pending action without firing it; returns whether one was pending."""
        with self._lock:
            had_action = self._action is not None
            self._action = None
            return had_action

    def dispose(self, timeout: float | None = 1.0) -> None:
        """
        Stop the timer permanently. Idempotent; pending actions never fire.
        """
        with self._lock:
            self._disposed = True
            self._action = None
            thread = self._thread
        self._stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def __enter__(self) -> "Debouncer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def _run(self) -> None:
        while True:
            with self._lock:
                tick_s = self._tick_s
            if self._stop.wait(tick_s):
                return

            fire: Callable[[], None] | None = None
            with self._lock:
                if self._action is not None:
                    self._remaining_s -= tick_s
                    # Tolerate float drift from repeated subtraction
                    if self._remaining_s <= 1e-9:
                        fire = self._action
                        self._action = None

            if fire is None:
                continue
            logger.debug("Debouncer %s firing %r", self.name, fire)
            try:
                fire()
            except Exception:
                logger.exception("Debouncer %s: action failed", self.name)
