"""Bandwidth contract shared by every admission algorithm.

A bandwidth tracks consumption for one rate of one key. Implementations only
provide two primitives over integer nanoseconds; locking, timeout handling
and the public ``Instant``/``Duration`` API live here.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from limitree.core.temporal import NANOS_PER_SECOND, Duration, Instant

logger = logging.getLogger(__name__)

MAX_NANOS = 2**63 - 1


def saturated_add(nanos: int, delta: float) -> int:
    """Add ``delta`` nanoseconds to ``nanos``, clamping at ``MAX_NANOS``."""
    if delta >= MAX_NANOS - nanos:
        return MAX_NANOS
    return nanos + int(delta)


def check_permits(permits: int) -> None:
    if permits < 0:
        raise ValueError(f"permits must be >= 0, got {permits}")


def check_rate(permits: int, duration: Duration) -> None:
    if permits < 0:
        raise ValueError(f"permits must be >= 0, got {permits}")
    if duration.nanoseconds <= 0:
        raise ValueError(f"duration must be > 0, got {duration}")


def to_permits_per_second(permits: int, duration: Duration) -> float:
    return permits * NANOS_PER_SECOND / duration.nanoseconds


class Bandwidth(ABC):
    """Admission state for a single rate.

    Every public method is thread-safe; a reservation is atomic with respect
    to other callers of the same bandwidth.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @property
    @abstractmethod
    def permits_per_second(self) -> float: ...

    @abstractmethod
    def _query_earliest_available(self, now_nanos: int) -> int:
        """Earliest time, in nanoseconds, at which permits can be handed out."""

    @abstractmethod
    def _reserve_earliest_available(self, permits: int, now_nanos: int) -> int:
        """Reserve permits and return the time, in nanoseconds, they become usable."""

    @abstractmethod
    def copy_at(self, now: Instant) -> Bandwidth:
        """A fresh bandwidth with this one's configuration, created at ``now``."""

    def query_earliest_available(self, now: Instant) -> Instant:
        with self._lock:
            return Instant(self._query_earliest_available(now.nanoseconds))

    def reserve_earliest_available(self, permits: int, now: Instant) -> Instant:
        check_permits(permits)
        with self._lock:
            return Instant(self._reserve_earliest_available(permits, now.nanoseconds))

    def can_acquire(self, now: Instant, timeout: Duration = Duration.ZERO) -> bool:
        with self._lock:
            return self._query_earliest_available(now.nanoseconds) - max(timeout.nanoseconds, 0) <= now.nanoseconds

    def try_reserve(self, permits: int, timeout: Duration, now: Instant) -> Duration | None:
        """Reserve ``permits`` if they are available within ``timeout``.

        Args:
            permits: Permits to reserve. Zero is always granted.
            timeout: Longest wait the caller accepts. Negative means zero.
            now: Current time.

        Returns:
            The wait the caller must observe before proceeding, or None when
            the permits cannot be granted within the timeout. Nothing is
            reserved on None.

        Raises:
            ValueError: If permits is negative.
        """
        check_permits(permits)
        if permits == 0:
            return Duration.ZERO
        if self.permits_per_second <= 0:
            return None
        with self._lock:
            if not self.can_acquire(now, timeout):
                return None
            moment = self._reserve_earliest_available(permits, now.nanoseconds)
        return Duration(max(moment - now.nanoseconds, 0))

    def try_acquire(self, permits: int, timeout: Duration, now: Instant) -> bool:
        return self.try_reserve(permits, timeout, now) is not None

    def __getstate__(self) -> dict:
        state = self.__dict__.copy()
        del state["_lock"]
        return state

    def __setstate__(self, state: dict) -> None:
        self.__dict__.update(state)
        self._lock = threading.RLock()
