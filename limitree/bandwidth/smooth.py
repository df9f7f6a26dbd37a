"""Smooth token-bucket bandwidths.

Permits are handed out at a stable rate. Time the bandwidth spends unused is
converted into "stored permits" which later requests may spend before paying
for fresh ones. Reservations move a ``next_free`` marker into the future, so
the cost of a request is borne by the *next* caller: a bandwidth that is idle
grants immediately even a large request, and everyone after it waits.

Two policies differ only in what stored permits cost and how fast they
accumulate:

- BurstyBandwidth: stored permits are free and accrue at the stable rate,
  capped at ``max_burst_seconds`` worth of permits.
- WarmingUpBandwidth: stored permits above a threshold are expensive. The
  price ramps linearly from the stable interval at the threshold up to the
  cold interval at the cap, so a bandwidth that sat idle starts slow and
  speeds up as it is used. It is created cold.
"""

from __future__ import annotations

import math
from abc import abstractmethod

from limitree.bandwidth.base import (
    Bandwidth,
    check_rate,
    saturated_add,
    to_permits_per_second,
)
from limitree.core.temporal import Duration, Instant


class SmoothBandwidth(Bandwidth):
    def __init__(self, permits: int, duration: Duration, now: Instant):
        super().__init__()
        check_rate(permits, duration)
        self._permits = permits
        self._duration = duration
        self._permits_per_second = to_permits_per_second(permits, duration)
        if permits > 0:
            self._stable_interval = duration.nanoseconds / permits
        else:
            self._stable_interval = math.inf
        self._stored_permits = 0.0
        self._max_permits = 0.0
        self._next_free = now.nanoseconds

    @property
    def permits(self) -> int:
        return self._permits

    @property
    def duration(self) -> Duration:
        return self._duration

    @property
    def permits_per_second(self) -> float:
        return self._permits_per_second

    @property
    def stable_interval(self) -> Duration:
        if math.isinf(self._stable_interval):
            return Duration(2**63 - 1)
        return Duration(int(self._stable_interval))

    @property
    def stored_permits(self) -> float:
        return self._stored_permits

    @property
    def max_permits(self) -> float:
        return self._max_permits

    @abstractmethod
    def _stored_permits_to_wait_time(self, stored_permits: float, permits_to_take: float) -> float:
        """Nanoseconds it costs to spend ``permits_to_take`` of ``stored_permits``."""

    @abstractmethod
    def _cool_down_interval(self) -> float:
        """Nanoseconds of idleness that add one stored permit."""

    def _resync(self, now_nanos: int) -> None:
        if now_nanos <= self._next_free:
            return
        cool_down = self._cool_down_interval()
        if cool_down > 0 and not math.isinf(cool_down):
            accrued = (now_nanos - self._next_free) / cool_down
            self._stored_permits = min(self._max_permits, self._stored_permits + accrued)
        self._next_free = now_nanos

    def _query_earliest_available(self, now_nanos: int) -> int:
        return self._next_free

    def _reserve_earliest_available(self, permits: int, now_nanos: int) -> int:
        self._resync(now_nanos)
        moment = self._next_free
        stored_to_spend = min(float(permits), self._stored_permits)
        fresh_permits = permits - stored_to_spend
        wait = 0.0
        if stored_to_spend > 0:
            wait = self._stored_permits_to_wait_time(self._stored_permits, stored_to_spend)
        if fresh_permits > 0:
            wait += fresh_permits * self._stable_interval
        self._next_free = saturated_add(self._next_free, wait)
        self._stored_permits -= stored_to_spend
        return moment

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(permits={self._permits}, duration={self._duration}, "
            f"stored={self._stored_permits:.3f}/{self._max_permits:.3f})"
        )


class BurstyBandwidth(SmoothBandwidth):
    """Token bucket that lets up to ``max_burst_seconds`` of idle time be spent at once.

    Args:
        permits: Permits per duration. Must be >= 0.
        duration: Rate duration. Must be > 0.
        now: Creation time.
        max_burst_seconds: Seconds worth of permits that may be stored.

    Raises:
        ValueError: If an argument is out of range.
    """

    def __init__(self, permits: int, duration: Duration, now: Instant, max_burst_seconds: float = 1.0):
        if max_burst_seconds <= 0:
            raise ValueError(f"max_burst_seconds must be > 0, got {max_burst_seconds}")
        super().__init__(permits, duration, now)
        self._max_burst_seconds = max_burst_seconds
        self._max_permits = max_burst_seconds * self._permits_per_second

    @property
    def max_burst_seconds(self) -> float:
        return self._max_burst_seconds

    def _stored_permits_to_wait_time(self, stored_permits: float, permits_to_take: float) -> float:
        return 0.0

    def _cool_down_interval(self) -> float:
        return self._stable_interval

    def copy_at(self, now: Instant) -> BurstyBandwidth:
        return BurstyBandwidth(self._permits, self._duration, now, self._max_burst_seconds)


class WarmingUpBandwidth(SmoothBandwidth):
    """Token bucket that ramps from a cold rate up to its stable rate.

    With a stable interval ``s`` and warm-up period ``w``:

    - cold interval ``c = s * cold_factor``
    - threshold ``t = 0.5 * w / s`` stored permits
    - cap ``m = t + 2 * w / (s + c)`` stored permits

    Spending stored permits between ``t`` and ``m`` costs the area under the
    line from ``(t, s)`` to ``(m, c)``; below ``t`` they cost ``s`` each.
    Idle time refills the bucket from empty to ``m`` in ``w``.

    Args:
        permits: Permits per duration. Must be >= 0.
        duration: Rate duration. Must be > 0.
        now: Creation time.
        warmup_period: Time to go from cold to stable.
        cold_factor: Cold interval as a multiple of the stable one, >= 1.

    Raises:
        ValueError: If an argument is out of range.
    """

    def __init__(
        self,
        permits: int,
        duration: Duration,
        now: Instant,
        warmup_period: Duration = Duration.from_seconds(1),
        cold_factor: float = 3.0,
    ):
        warmup_period = Duration.of(warmup_period)
        if warmup_period.nanoseconds <= 0:
            raise ValueError(f"warmup_period must be > 0, got {warmup_period}")
        if cold_factor < 1.0:
            raise ValueError(f"cold_factor must be >= 1.0, got {cold_factor}")
        super().__init__(permits, duration, now)
        self._warmup_period = warmup_period
        self._cold_factor = cold_factor
        self._threshold_permits = 0.0
        self._slope = 0.0
        if self._permits_per_second > 0:
            warmup = float(warmup_period.nanoseconds)
            stable = self._stable_interval
            cold = stable * cold_factor
            self._threshold_permits = 0.5 * warmup / stable
            self._max_permits = self._threshold_permits + 2.0 * warmup / (stable + cold)
            self._slope = (cold - stable) / (self._max_permits - self._threshold_permits)
        self._stored_permits = self._max_permits

    @property
    def warmup_period(self) -> Duration:
        return self._warmup_period

    @property
    def cold_factor(self) -> float:
        return self._cold_factor

    @property
    def threshold_permits(self) -> float:
        return self._threshold_permits

    def _permits_to_time(self, permits: float) -> float:
        return self._stable_interval + permits * self._slope

    def _stored_permits_to_wait_time(self, stored_permits: float, permits_to_take: float) -> float:
        above_threshold = stored_permits - self._threshold_permits
        nanos = 0.0
        if above_threshold > 0:
            taken_above = min(above_threshold, permits_to_take)
            length = self._permits_to_time(above_threshold) + self._permits_to_time(above_threshold - taken_above)
            nanos = taken_above * length / 2.0
            permits_to_take -= taken_above
        return nanos + self._stable_interval * permits_to_take

    def _cool_down_interval(self) -> float:
        if self._max_permits <= 0:
            return math.inf
        return self._warmup_period.nanoseconds / self._max_permits

    def copy_at(self, now: Instant) -> WarmingUpBandwidth:
        return WarmingUpBandwidth(self._permits, self._duration, now, self._warmup_period, self._cold_factor)
