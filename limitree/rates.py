"""Immutable quota configuration values.

A ``Rate`` says "at most N permits per duration". A ``Rates`` bundles several
of them under a logical operator. ``RateConfig`` is what a node of a limiter
tree carries; a node without one performs no limiting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Any

from limitree.core.temporal import Duration


class Algorithm(StrEnum):
    """Built-in bandwidth algorithms."""

    ALL_OR_NOTHING = "all_or_nothing"
    BURSTY = "bursty"
    WARMING_UP = "warming_up"

    @classmethod
    def parse(cls, value: Algorithm | str) -> Algorithm:
        """Resolve an enum member from a member, a value or a member name.

        Raises:
            ValueError: If the name does not denote a built-in algorithm.
        """
        if isinstance(value, Algorithm):
            return value
        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(a.value for a in cls)
            raise ValueError(f"Unknown bandwidth algorithm {value!r}, expected one of: {valid}") from None


class Operator(Enum):
    """How the outcomes of several limits combine."""

    AND = "and"
    OR = "or"
    NONE = "none"


@dataclass(frozen=True)
class Rate:
    """At most ``permits`` permits every ``duration``.

    Args:
        permits: Permits allowed per duration. Must be >= 0.
        duration: Window length, a Duration or seconds. Must be > 0.
        algorithm: Bandwidth algorithm. None selects the configured default.

    Raises:
        ValueError: If permits or duration are out of range.
    """

    permits: int
    duration: Duration
    algorithm: Algorithm | str | None = None

    def __post_init__(self):
        if isinstance(self.permits, bool) or not isinstance(self.permits, int):
            raise TypeError(f"permits must be an int, got {type(self.permits).__name__}")
        if self.permits < 0:
            raise ValueError(f"permits must be >= 0, got {self.permits}")
        duration = Duration.of(self.duration)
        if duration.nanoseconds <= 0:
            raise ValueError(f"duration must be > 0, got {duration}")
        object.__setattr__(self, "duration", duration)

    @classmethod
    def of(cls, permits: int, duration: Duration | int | float = 1, algorithm: Algorithm | str | None = None) -> Rate:
        return cls(permits, Duration.of(duration), algorithm)

    @classmethod
    def per_second(cls, permits: int, algorithm: Algorithm | str | None = None) -> Rate:
        return cls(permits, Duration.from_seconds(1), algorithm)

    @classmethod
    def per_minute(cls, permits: int, algorithm: Algorithm | str | None = None) -> Rate:
        return cls(permits, Duration.from_seconds(60), algorithm)

    def __str__(self) -> str:
        return f"{self.permits}/{self.duration.to_seconds():g}s"


@dataclass(frozen=True)
class Rates:
    """Zero or more ``Rate`` limits combined with ``operator``."""

    operator: Operator = Operator.OR
    limits: tuple[Rate, ...] = ()

    def __post_init__(self):
        if self.operator is None:
            raise ValueError("operator must not be None")
        if any(limit is None for limit in self.limits):
            raise ValueError("limits must not contain None")
        object.__setattr__(self, "limits", tuple(self.limits))

    @classmethod
    def of(cls, *limits: Rate) -> Rates:
        return cls(Operator.OR, limits)

    @classmethod
    def or_(cls, *limits: Rate) -> Rates:
        return cls(Operator.OR, limits)

    @classmethod
    def and_(cls, *limits: Rate) -> Rates:
        return cls(Operator.AND, limits)

    @classmethod
    def empty(cls) -> Rates:
        return cls()

    def has_limits(self) -> bool:
        return len(self.limits) > 0

    def size(self) -> int:
        return len(self.limits)

    def __len__(self) -> int:
        return len(self.limits)

    def __str__(self) -> str:
        joined = f" {self.operator.value} ".join(str(limit) for limit in self.limits)
        return f"[{joined}]"


@dataclass(frozen=True)
class RateConfig:
    """The quota attached to one node of a limiter tree.

    Args:
        id: Identifier of the configured resource.
        rates: The limits that apply to the resource.
        condition: Optional activation expression, interpreted by a
            caller-supplied matcher factory. Empty means "always".
    """

    id: str
    rates: Rates = field(default_factory=Rates)
    condition: str = ""

    def has_limits(self) -> bool:
        return self.rates.has_limits()


@dataclass(frozen=True)
class NodeValue[V]:
    """A node payload that remembers where it was configured from."""

    source: Any
    value: V
