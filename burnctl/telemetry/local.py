"""
In-process implementation of the telemetry contract.

LocalTelemetry keeps named channels of values and hands out LocalStream
subscriptions over them. It bridges push-style clients (callbacks that
deliver new values) into the blocking ``get``/``wait`` contract the rest of
burnctl consumes, and it records subscribe/release counts so leaks are
observable.

Example:
    >>> telemetry = LocalTelemetry({"altitude": 2000.0})
    >>> stream = telemetry.subscribe("altitude")
    >>> telemetry.publish("altitude", 1500.0)
    >>> stream.get()
    1500.0
    >>> stream.release()
    >>> telemetry.open_streams("altitude")
    0
"""

from __future__ import annotations

import threading
from typing import Any, Hashable

from burnctl.errors import StreamClosedError, TransientRemoteError


class _Channel:
    """A single value plus the condition that announces updates to it."""

    def __init__(self, value: Any) -> None:
        self.value = value
        self.version = 0
        self.condition = threading.Condition()


class LocalStream:
    """
    Subscription handle over one LocalTelemetry channel.

    ``wait()`` returns as soon as the channel version moves past the version
    this handle last observed, so updates published between a ``get()`` and
    the following ``wait()`` are not lost.
    """

    def __init__(self, owner: "LocalTelemetry", source: Hashable, channel: _Channel) -> None:
        self._owner = owner
        self._source = source
        self._channel = channel
        self._seen = channel.version
        self._released = False
        self.rate_hz: float | None = None

    @property
    def source(self) -> Hashable:
        return self._source

    @property
    def released(self) -> bool:
        return self._released

    def _check_open(self) -> None:
        if self._released:
            raise StreamClosedError(f"stream {self._source!r} used after release")

    def get(self) -> Any:
        self._check_open()
        self._owner._maybe_fail(self._source)
        with self._channel.condition:
            self._seen = self._channel.version
            return self._channel.value

    def wait(self, timeout: float | None = None) -> bool:
        self._check_open()
        with self._channel.condition:
            updated = self._channel.condition.wait_for(
                lambda: self._channel.version != self._seen or self._released,
                timeout=timeout,
            )
            self._seen = self._channel.version
        self._check_open()
        return bool(updated)

    def set_rate(self, hz: float) -> None:
        self._check_open()
        self.rate_hz = float(hz)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        with self._channel.condition:
            self._channel.condition.notify_all()
        self._owner._on_release(self._source)


class LocalTelemetry:
    """
    Named in-process telemetry channels implementing TelemetryClient.

    Args:
        initial: Initial channel values. Channels can also be created later
                 by ``publish()``.
    """

    def __init__(self, initial: dict[Hashable, Any] | None = None) -> None:
        self._lock = threading.Lock()
        self._channels: dict[Hashable, _Channel] = {}
        self._subscribed: dict[Hashable, int] = {}
        self._released: dict[Hashable, int] = {}
        self._failures: dict[Hashable, Exception] = {}
        for source, value in (initial or {}).items():
            self._channels[source] = _Channel(value)

    def _channel(self, source: Hashable) -> _Channel:
        with self._lock:
            channel = self._channels.get(source)
            if channel is None:
                raise TransientRemoteError(f"unknown telemetry source {source!r}")
            return channel

    def subscribe(self, source: Hashable) -> LocalStream:
        channel = self._channel(source)
        with self._lock:
            self._subscribed[source] = self._subscribed.get(source, 0) + 1
        return LocalStream(self, source, channel)

    def publish(self, source: Hashable, value: Any) -> None:
        """Set a channel value and wake every stream waiting on it."""
        with self._lock:
            channel = self._channels.get(source)
            if channel is None:
                channel = self._channels[source] = _Channel(value)
        with channel.condition:
            channel.value = value
            channel.version += 1
            channel.condition.notify_all()

    def value(self, source: Hashable) -> Any:
        channel = self._channel(source)
        with channel.condition:
            return channel.value

    def fail_reads(self, source: Hashable, error: Exception | None = None) -> None:
        """Make subsequent ``get()`` calls on ``source`` raise ``error``."""
        with self._lock:
            if error is None:
                self._failures.pop(source, None)
            else:
                self._failures[source] = error

    def _maybe_fail(self, source: Hashable) -> None:
        with self._lock:
            error = self._failures.get(source)
        if error is not None:
            raise error

    def _on_release(self, source: Hashable) -> None:
        with self._lock:
            self._released[source] = self._released.get(source, 0) + 1

    def subscriptions(self, source: Hashable) -> int:
        """Total number of subscriptions ever made to ``source``."""
        with self._lock:
            return self._subscribed.get(source, 0)

    def open_streams(self, source: Hashable) -> int:
        """Subscriptions to ``source`` that have not been released."""
        with self._lock:
            return self._subscribed.get(source, 0) - self._released.get(source, 0)
