"""Nanosecond-precision time values.

``Instant`` is a point on a clock's timeline and ``Duration`` is the distance
between two points. Both wrap an integer nanosecond count so arithmetic on
them is exact; floats only appear at the ``from_seconds`` / ``to_seconds``
edges.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

NANOS_PER_SECOND = 1_000_000_000


def _seconds_to_nanos(seconds: int | float) -> int:
    if isinstance(seconds, int):
        return seconds * NANOS_PER_SECOND
    return int(seconds * NANOS_PER_SECOND)


@dataclass(frozen=True, order=True, slots=True)
class Duration:
    """A span of time in nanoseconds. May be negative."""

    nanoseconds: int

    ZERO: ClassVar[Duration]

    @classmethod
    def from_seconds(cls, seconds: int | float) -> Duration:
        return cls(_seconds_to_nanos(seconds))

    @classmethod
    def from_millis(cls, millis: int | float) -> Duration:
        return cls(int(millis * 1_000_000))

    @classmethod
    def of(cls, value: Duration | int | float) -> Duration:
        """Coerce a Duration or a number of seconds into a Duration."""
        if isinstance(value, Duration):
            return value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"expected Duration or seconds, got {type(value).__name__}")
        return cls.from_seconds(value)

    def to_seconds(self) -> float:
        return self.nanoseconds / NANOS_PER_SECOND

    def __add__(self, other: Duration) -> Duration:
        if isinstance(other, Duration):
            return Duration(self.nanoseconds + other.nanoseconds)
        return NotImplemented

    def __sub__(self, other: Duration) -> Duration:
        if isinstance(other, Duration):
            return Duration(self.nanoseconds - other.nanoseconds)
        return NotImplemented

    def __mul__(self, factor: int | float) -> Duration:
        if isinstance(factor, (int, float)):
            return Duration(int(self.nanoseconds * factor))
        return NotImplemented

    __rmul__ = __mul__

    def __neg__(self) -> Duration:
        return Duration(-self.nanoseconds)

    def __bool__(self) -> bool:
        return self.nanoseconds != 0

    def __repr__(self) -> str:
        return f"Duration({self.to_seconds():.9f}s)"


Duration.ZERO = Duration(0)


@dataclass(frozen=True, order=True, slots=True)
class Instant:
    """A point in time, in nanoseconds since the owning clock's origin."""

    nanoseconds: int

    Epoch: ClassVar[Instant]

    @classmethod
    def from_seconds(cls, seconds: int | float) -> Instant:
        return cls(_seconds_to_nanos(seconds))

    def to_seconds(self) -> float:
        return self.nanoseconds / NANOS_PER_SECOND

    def __add__(self, other: Duration | int | float) -> Instant:
        if isinstance(other, Duration):
            return Instant(self.nanoseconds + other.nanoseconds)
        if isinstance(other, (int, float)):
            return Instant(self.nanoseconds + _seconds_to_nanos(other))
        return NotImplemented

    def __radd__(self, other: Duration) -> Instant:
        return self.__add__(other)

    def __sub__(self, other):
        if isinstance(other, Instant):
            return Duration(self.nanoseconds - other.nanoseconds)
        if isinstance(other, Duration):
            return Instant(self.nanoseconds - other.nanoseconds)
        if isinstance(other, (int, float)):
            return Instant(self.nanoseconds - _seconds_to_nanos(other))
        return NotImplemented

    def __repr__(self) -> str:
        return f"Instant({self.to_seconds():.9f}s)"


Instant.Epoch = Instant(0)
