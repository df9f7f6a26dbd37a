"""Clocks that limiters read the current time from and sleep on."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod

from limitree.core.temporal import Duration, Instant


class Clock(ABC):
    @property
    @abstractmethod
    def now(self) -> Instant: ...

    @abstractmethod
    def sleep(self, duration: Duration) -> None: ...


class SystemClock(Clock):
    """Monotonic wall clock. ``now`` is relative to an arbitrary origin."""

    @property
    def now(self) -> Instant:
        return Instant(time.monotonic_ns())

    def sleep(self, duration: Duration) -> None:
        if duration.nanoseconds > 0:
            time.sleep(duration.to_seconds())


class ManualClock(Clock):
    """A clock that only moves when told to.

    ``sleep`` advances the clock instead of blocking, so code that waits on a
    limiter can be exercised deterministically.
    """

    def __init__(self, start_time: Instant = Instant.Epoch):
        self._current_time = start_time
        self._lock = threading.Lock()

    @property
    def now(self) -> Instant:
        return self._current_time

    def update(self, time: Instant) -> None:
        with self._lock:
            self._current_time = time

    def advance(self, duration: Duration | int | float) -> Instant:
        with self._lock:
            self._current_time = self._current_time + Duration.of(duration)
            return self._current_time

    def sleep(self, duration: Duration) -> None:
        if duration.nanoseconds > 0:
            self.advance(duration)
