"""
Cancellation tokens for cooperative preemption.

Python cannot safely kill a thread at an arbitrary instruction, so preemption
here is narrowed to "guaranteed wake-and-unwind at the next checkpoint". Every
blocking step in burnctl (stream waits, loop sleeps) goes through a token:

- ``token.sleep(s)`` wakes the instant the token is cancelled and raises.
- ``token.raise_if_cancelled()`` is an explicit checkpoint.
- Stream waits poll the token at least once per poll interval.

A worker stuck in a call that never returns to one of these checkpoints
cannot be interrupted; PreemptibleTask releases its caller after a bounded
unwind timeout in that case and discards whatever the worker later returns.

Example:
    >>> token = CancellationToken()
    >>> child = token.child()
    >>> token.cancel("operator abort")
    >>> child.cancelled
    True
"""

from __future__ import annotations

import threading

from burnctl.errors import OperationCancelled


class CancellationToken:
    """
    A one-shot, thread-safe cancellation signal.

    Once cancelled a token stays cancelled. Linked child tokens are cancelled
    together with their parent (but cancelling a child leaves the parent alone).

    Attributes:
        name: Label used in log lines and error messages.
    """

    def __init__(
        self,
        name: str = "token",
        error_type: type[OperationCancelled] = OperationCancelled,
    ) -> None:
        self.name = name
        self._error_type = error_type
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._children: list[CancellationToken] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """
        Cancel the token and every linked child.

        Returns:
            True if this call performed the cancellation, False if the token
            was already cancelled.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel(reason)
        return True

    def child(
        self,
        name: str | None = None,
        error_type: type[OperationCancelled] | None = None,
    ) -> "CancellationToken":
        """Create a token that is cancelled whenever this one is."""
        token = CancellationToken(
            name=name or f"{self.name}.child",
            error_type=error_type or self._error_type,
        )
        with self._lock:
            if not self._event.is_set():
                self._children.append(token)
                return token
        token.cancel(self._reason or "cancelled")
        return token

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise self._error_type(self._reason or "cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout; returns whether the token is cancelled."""
        return self._event.wait(timeout)

    def sleep(self, seconds: float) -> None:
        """
        Sleep for ``seconds`` unless cancelled first.

        Raises:
            OperationCancelled (or the token's error type) if the token is
            cancelled before or during the sleep.
        """
        self.raise_if_cancelled()
        if seconds > 0 and self._event.wait(seconds):
            self.raise_if_cancelled()

    def __repr__(self) -> str:
        state = f"cancelled({self._reason!r})" if self.cancelled else "active"
        return f"CancellationToken({self.name!r}, {state})"

