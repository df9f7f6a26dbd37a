"""Fixed-window bandwidth."""

from __future__ import annotations

from limitree.bandwidth.base import Bandwidth, check_permits, check_rate, to_permits_per_second
from limitree.core.temporal import Duration, Instant


class AllOrNothingBandwidth(Bandwidth):
    """Fixed window counter that never makes a caller wait.

    The first window starts when the bandwidth is created. Each window hands
    out at most ``permits`` permits; once the window elapses the counter is
    refilled. A request that does not fit in what is left of the window is
    rejected outright, whatever the timeout, and consumes nothing.

    Args:
        permits: Permits per window. Must be >= 0.
        duration: Window length. Must be > 0.
        now: Creation time, which anchors the first window.

    Raises:
        ValueError: If permits or duration are out of range.
    """

    def __init__(self, permits: int, duration: Duration, now: Instant):
        super().__init__()
        check_rate(permits, duration)
        self._permits = permits
        self._duration = duration
        self._window_start = now.nanoseconds
        self._remaining = permits

    @property
    def permits(self) -> int:
        return self._permits

    @property
    def duration(self) -> Duration:
        return self._duration

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def permits_per_second(self) -> float:
        return to_permits_per_second(self._permits, self._duration)

    def _roll(self, now_nanos: int) -> None:
        window = self._duration.nanoseconds
        elapsed = now_nanos - self._window_start
        if elapsed >= window:
            self._window_start += (elapsed // window) * window
            self._remaining = self._permits

    def _query_earliest_available(self, now_nanos: int) -> int:
        self._roll(now_nanos)
        if self._remaining > 0:
            return now_nanos
        return self._window_start + self._duration.nanoseconds

    def _reserve_earliest_available(self, permits: int, now_nanos: int) -> int:
        self._roll(now_nanos)
        if permits <= self._remaining:
            self._remaining -= permits
            return now_nanos
        return self._window_start + self._duration.nanoseconds

    def try_reserve(self, permits: int, timeout: Duration, now: Instant) -> Duration | None:
        check_permits(permits)
        if permits == 0:
            return Duration.ZERO
        with self._lock:
            self._roll(now.nanoseconds)
            if permits > self._remaining:
                return None
            self._remaining -= permits
        return Duration.ZERO

    def copy_at(self, now: Instant) -> AllOrNothingBandwidth:
        return AllOrNothingBandwidth(self._permits, self._duration, now)

    def __repr__(self) -> str:
        return (
            f"AllOrNothingBandwidth(permits={self._permits}, duration={self._duration}, "
            f"remaining={self._remaining})"
        )
