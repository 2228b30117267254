"""
Condition-triggered preemption of a worker.

A PreemptibleTask runs two threads:

```
    start(worker) ── caller blocks until settled
        |
        +-- worker thread:   result = worker()
        |                    (checkpoints go through task.token)
        |
        +-- monitor thread:  wait_for(stream, condition, monitor_token)
                             -> abort() when the condition holds
```

Whichever side settles first decides the terminal state under a lock; the
loser is torn down before start() returns:

- worker returns first  -> COMPLETED, monitor token cancelled, monitor joined
- condition holds first -> ABORTED, worker token cancelled, on_abort run to
                           completion, start() waits up to
                           unwind_timeout_s for the worker to unwind
                           and returns None
- worker or monitor raises -> FAILED, the other side is cancelled and the
                              error is re-raised from start()

Preemption is cooperative (see burnctl.runtime.cancellation): the worker is
woken at its next token checkpoint, where TaskPreempted is raised and caught
at the worker boundary. A worker that never reaches a checkpoint is abandoned
after the unwind timeout; anything it returns afterwards is discarded.

Example:
    >>> task = PreemptibleTask(telemetry, "control.abort", lambda pressed: pressed,
    ...                        on_abort=run_escape_sequence)
    >>> result = task.start(lambda: ascend(task.token))
    >>> task.was_aborted
    False
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Generic, Hashable, TypeVar

from burnctl.config import DEFAULT_TIMING, LoopTiming
from burnctl.errors import OperationCancelled, TaskPreempted
from burnctl.runtime.cancellation import CancellationToken
from burnctl.telemetry.interfaces import TelemetryClient, TelemetryStream
from burnctl.telemetry.waiting import wait_for

logger = logging.getLogger(__name__)

R = TypeVar("R")


class TaskState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


class PreemptibleTask(Generic[R]):
    """
    Runs a worker while a monitor watches a telemetry condition.

    Each start() is a new run with fresh tokens. Threads left over from an
    earlier run (an abandoned worker, say) carry that run's generation and
    cannot settle a later one.

    Attributes:
        name: Label used for thread names and log lines.
        timing: Poll interval for the monitor and the worker unwind timeout.
    """

    def __init__(
        self,
        client: TelemetryClient,
        source: Hashable,
        condition: Callable[[Any], bool],
        on_abort: Callable[[], None] | None = None,
        parent: CancellationToken | None = None,
        timing: LoopTiming = DEFAULT_TIMING,
        name: str = "task",
    ) -> None:
        """
        Args:
            client: Telemetry client the monitor subscribes through.
            source: Telemetry source watched by the monitor.
            condition: Abort condition over the streamed value.
            on_abort: Called once, on the aborting thread, after the worker
                      token has been cancelled.
            parent: Optional outer token; cancelling it cancels both the
                    worker and the monitor (without calling on_abort).
            timing: Loop timing constants.
            name: Label for threads and log lines.
        """
        self.name = name
        self.timing = timing
        self._client = client
        self._source = source
        self._condition = condition
        self._on_abort = on_abort
        self._parent = parent

        self._lock = threading.Lock()
        self._state = TaskState.IDLE
        self._generation = 0
        self._was_aborted = False
        self._result: R | None = None
        self._error: BaseException | None = None
        self._settled = threading.Event()
        self._token = self._new_token("worker", TaskPreempted)
        self._monitor_token = self._new_token("monitor", OperationCancelled)

    def _new_token(self, role: str, error_type: type[OperationCancelled]) -> CancellationToken:
        name = f"{self.name}.{role}"
        if self._parent is not None:
            return self._parent.child(name=name, error_type=error_type)
        return CancellationToken(name=name, error_type=error_type)

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------
    @property
    def token(self) -> CancellationToken:
        """Token the worker must pass to every blocking call."""
        return self._token

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def was_aborted(self) -> bool:
        """True only if the worker was preempted (monitor, abort() or parent)."""
        return self._was_aborted

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, worker: Callable[[], R]) -> R | None:
        """
        Run ``worker`` under the monitor and block until the task settles.

        Returns:
            The worker's return value on normal completion, None if aborted.

        Raises:
            RuntimeError: If the task is already running.
            Exception: Whatever the worker or the monitor raised (SystemExit
                       and KeyboardInterrupt included), or the subscribe
                       error if the monitor could not subscribe. A
                       cancellation the worker raised from a token of its
                       own is re-raised too; it does not count as an abort.
        """
        with self._lock:
            if self._state is TaskState.RUNNING:
                raise RuntimeError(f"task {self.name!r} is already running")
            if self._state is not TaskState.IDLE:
                self._token = self._new_token("worker", TaskPreempted)
                self._monitor_token = self._new_token("monitor", OperationCancelled)
            self._generation += 1
            generation = self._generation
            self._state = TaskState.RUNNING
            self._was_aborted = False
            self._result = None
            self._error = None
            self._settled = threading.Event()
            settled = self._settled
            token, monitor_token = self._token, self._monitor_token
            worker_done = threading.Event()

        # Subscribing on the caller's thread lets subscribe errors propagate directly
        try:
            stream = self._client.subscribe(self._source)
        except BaseException:
            with self._lock:
                self._state = TaskState.IDLE
            raise

        monitor = threading.Thread(
            target=self._run_monitor,
            args=(stream, monitor_token, generation),
            name=f"{self.name}-monitor",
            daemon=True,
        )
        worker_thread = threading.Thread(
            target=self._run_worker,
            args=(worker, token, generation, worker_done),
            name=f"{self.name}-worker",
            daemon=True,
        )
        monitor.start()
        worker_thread.start()

        try:
            settled.wait()

            if self._state is TaskState.COMPLETED:
                worker_thread.join()
            elif not worker_done.wait(self.timing.unwind_timeout_s):
                logger.warning(
                    "Task %s: worker did not unwind within %.2fs; abandoning it",
                    self.name,
                    self.timing.unwind_timeout_s,
                )

            monitor.join(self.timing.unwind_timeout_s + self.timing.poll_interval_s)
            if monitor.is_alive():
                logger.warning("Task %s: monitor still running after teardown", self.name)
        except BaseException:
            # Caller interrupted while waiting: stop both threads so the
            # monitor releases its stream
            self._settle(generation, TaskState.ABORTED, reason="caller interrupted")
            token.cancel("caller interrupted")
            monitor_token.cancel("caller interrupted")
            raise

        if self._state is TaskState.FAILED and self._error is not None:
            raise self._error
        if self._state is TaskState.COMPLETED:
            logger.debug("Task %s completed without abort", self.name)
            return self._result
        return None

    def abort(self, reason: str = "aborted") -> bool:
        """
        Preempt the running worker.

        Returns:
            True if this call aborted the task, False if it had already
            settled (completed, failed or aborted) or never started.
        """
        return self._abort(reason, None)

    def _abort(self, reason: str, generation: int | None) -> bool:
        with self._lock:
            if self._state is not TaskState.RUNNING:
                return False
            if generation is not None and generation != self._generation:
                return False
            self._state = TaskState.ABORTED
            self._was_aborted = True
            token, monitor_token, settled = self._token, self._monitor_token, self._settled

        token.cancel(reason)
        monitor_token.cancel(reason)
        logger.warning("Task %s aborted: %s", self.name, reason)

        # start() returns only after on_abort has finished
        try:
            if self._on_abort is not None:
                try:
                    self._on_abort()
                except Exception:
                    logger.exception("Task %s: on_abort callback failed", self.name)
        finally:
            settled.set()
        return True

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------
    def _run_worker(
        self,
        worker: Callable[[], R],
        token: CancellationToken,
        generation: int,
        done: threading.Event,
    ) -> None:
        try:
            result = worker()
        except OperationCancelled as exc:
            # A cancellation from a token the worker owns is not a preemption
            if token.cancelled:
                self._settle(generation, TaskState.ABORTED, reason=exc.reason)
            else:
                self._settle(generation, TaskState.FAILED, error=exc)
        except BaseException as exc:
            # SystemExit and friends end the run too; start() re-raises them
            self._settle(generation, TaskState.FAILED, error=exc)
        else:
            self._settle(generation, TaskState.COMPLETED, result=result)
        finally:
            done.set()

    def _run_monitor(
        self,
        stream: TelemetryStream[Any],
        token: CancellationToken,
        generation: int,
    ) -> None:
        try:
            wait_for(stream, self._condition, token, self.timing.poll_interval_s)
        except OperationCancelled as exc:
            # Only an outer cancellation needs settling here; a worker that
            # already finished cancelled this token itself.
            if self._parent is not None and self._parent.cancelled:
                self._settle(generation, TaskState.ABORTED, reason=exc.reason)
        except Exception as exc:
            logger.exception("Task %s: monitor failed", self.name)
            self._settle(generation, TaskState.FAILED, error=exc)
        else:
            self._abort("abort condition met", generation)
        finally:
            stream.release()

    # ------------------------------------------------------------------
    # Settling (first one wins)
    # ------------------------------------------------------------------
    def _settle(
        self,
        generation: int,
        state: TaskState,
        result: R | None = None,
        error: BaseException | None = None,
        reason: str = "",
    ) -> None:
        with self._lock:
            if generation != self._generation or self._state is not TaskState.RUNNING:
                return
            self._state = state
            if state is TaskState.ABORTED:
                self._was_aborted = True
            self._result = result
            self._error = error
            token, monitor_token, settled = self._token, self._monitor_token, self._settled

        if state is TaskState.COMPLETED:
            monitor_token.cancel("worker completed")
        elif state is TaskState.FAILED:
            token.cancel(f"task failed: {error}")
            monitor_token.cancel("task failed")
        else:
            # Parent cancellation or a worker that gave up on its own token
            token.cancel(reason)
            monitor_token.cancel(reason)
            logger.info("Task %s cancelled: %s", self.name, reason)
        settled.set()
