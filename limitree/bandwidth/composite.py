"""Several bandwidths evaluated together under one operator."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator

from limitree.bandwidth.base import Bandwidth, check_permits
from limitree.core.temporal import Duration, Instant
from limitree.rates import Operator

logger = logging.getLogger(__name__)


class Bandwidths:
    """The admission state of one key: one bandwidth per configured rate.

    Every member is attempted on each request, in order. The composite is
    exceeded when, under OR, all members failed, and under AND, any member
    failed. NONE and an empty composite are never exceeded.

    Members that granted keep their consumption when the composite as a
    whole is rejected. Callers that need all-or-nothing semantics across
    members must use a single rate.
    """

    def __init__(self, members: Iterable[Bandwidth] = (), operator: Operator = Operator.OR):
        if operator is None:
            raise ValueError("operator must not be None")
        self._members: tuple[Bandwidth, ...] = tuple(members)
        self._operator = operator
        self._lock = threading.RLock()

    @classmethod
    def empty(cls) -> Bandwidths:
        return cls()

    @property
    def members(self) -> tuple[Bandwidth, ...]:
        return self._members

    @property
    def operator(self) -> Operator:
        return self._operator

    def has_members(self) -> bool:
        return len(self._members) > 0

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Bandwidth]:
        return iter(self._members)

    def is_exceeded(self, failures: int) -> bool:
        """Whether ``failures`` failed members exceed the composite."""
        if not self._members:
            return False
        match self._operator:
            case Operator.AND:
                return failures > 0
            case Operator.OR:
                return failures >= len(self._members)
            case Operator.NONE:
                return False
        raise ValueError(f"Unsupported operator: {self._operator}")

    def try_reserve(self, permits: int, timeout: Duration, now: Instant) -> Duration | None:
        """Attempt every member and combine the outcomes.

        Returns:
            The longest wait among members that granted (zero if none did
            and the composite is not exceeded), or None when exceeded.
        """
        check_permits(permits)
        failures = 0
        wait = Duration.ZERO
        with self._lock:
            for member in self._members:
                member_wait = member.try_reserve(permits, timeout, now)
                if member_wait is None:
                    failures += 1
                elif member_wait > wait:
                    wait = member_wait
        if self.is_exceeded(failures):
            logger.debug(
                "Bandwidths exceeded: %d of %d members failed under %s",
                failures, len(self._members), self._operator.name,
            )
            return None
        return wait

    def try_acquire(self, permits: int, timeout: Duration, now: Instant) -> bool:
        return self.try_reserve(permits, timeout, now) is not None

    def copy_at(self, now: Instant) -> Bandwidths:
        return Bandwidths((member.copy_at(now) for member in self._members), self._operator)

    def __getstate__(self) -> dict:
        return {"members": self._members, "operator": self._operator}

    def __setstate__(self, state: dict) -> None:
        self._members = tuple(state["members"])
        self._operator = state["operator"]
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"Bandwidths(operator={self._operator.name}, members={list(self._members)!r})"
