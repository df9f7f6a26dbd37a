"""Single-resource limiters and the provider that assigns them to tree nodes."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from limitree.bandwidth.composite import Bandwidths
from limitree.bandwidth.factory import BandwidthFactory
from limitree.core.clock import Clock, SystemClock
from limitree.core.temporal import Duration
from limitree.listener import NO_OP_LISTENER, UsageListener
from limitree.node import Node
from limitree.rates import NodeValue, RateConfig, Rates
from limitree.store.base import BandwidthsStore, MapBandwidthsStore

logger = logging.getLogger(__name__)


class ResourceLimiter[K](ABC):
    """Decides whether ``permits`` may be consumed for a key."""

    @abstractmethod
    def try_consume(self, key: K, permits: int = 1, timeout: Duration | int | float = Duration.ZERO) -> bool:
        """Consume permits for ``key``, waiting at most ``timeout``.

        Args:
            key: What to limit, as produced by a matcher.
            permits: Permits to consume. Must be >= 0.
            timeout: Longest acceptable wait, a Duration or seconds.

        Returns:
            True if the permits were granted (after any required wait).
        """

    @abstractmethod
    def with_store(self, store: BandwidthsStore) -> ResourceLimiter[K]:
        """A limiter that keeps its state in ``store``."""

    @abstractmethod
    def with_listener(self, listener: UsageListener) -> ResourceLimiter[K]:
        """A limiter that reports usage to ``listener``."""

    def and_then(self, after: ResourceLimiter[K]) -> ResourceLimiter[K]:
        """Consume from this limiter, then from ``after`` only if this one granted."""
        if after is NO_OP_LIMITER:
            return self
        return _AndThenLimiter(self, after)


class _NoOpLimiter(ResourceLimiter[Any]):
    def try_consume(self, key: Any, permits: int = 1, timeout: Duration | int | float = Duration.ZERO) -> bool:
        return True

    def with_store(self, store: BandwidthsStore) -> ResourceLimiter[Any]:
        return self

    def with_listener(self, listener: UsageListener) -> ResourceLimiter[Any]:
        return self

    def and_then(self, after: ResourceLimiter[Any]) -> ResourceLimiter[Any]:
        return after

    def __repr__(self) -> str:
        return "NO_OP_LIMITER"


NO_OP_LIMITER: ResourceLimiter[Any] = _NoOpLimiter()


class _AndThenLimiter[K](ResourceLimiter[K]):
    def __init__(self, first: ResourceLimiter[K], second: ResourceLimiter[K]):
        self._first = first
        self._second = second

    def try_consume(self, key: K, permits: int = 1, timeout: Duration | int | float = Duration.ZERO) -> bool:
        return self._first.try_consume(key, permits, timeout) and self._second.try_consume(key, permits, timeout)

    def with_store(self, store: BandwidthsStore) -> ResourceLimiter[K]:
        return _AndThenLimiter(self._first.with_store(store), self._second.with_store(store))

    def with_listener(self, listener: UsageListener) -> ResourceLimiter[K]:
        return _AndThenLimiter(self._first.with_listener(listener), self._second.with_listener(listener))


def rates_of(value: Any) -> Rates | None:
    """Extract the ``Rates`` configured by a node value, if any."""
    match value:
        case RateConfig():
            return value.rates
        case Rates():
            return value
        case NodeValue():
            return rates_of(value.value)
    return None


class BandwidthsLimiter[K](ResourceLimiter[K]):
    """Limits every key independently by the same ``Rates``.

    Each key gets its own ``Bandwidths``, created on first use and kept in
    ``store``. After every attempt the key's state is written back to the
    store so that externally shared stores see it. Attempts on one key are
    serialized from read to write-back, so a store that hands out copies
    still sees every reservation made through this limiter.

    Args:
        rates: Limits applied to each key.
        factory: Creates bandwidths for new keys.
        store: Per-key state. Defaults to a private in-process map.
        clock: Time source, also used to sleep out granted waits.
        listener: Usage sink.
    """

    def __init__(
        self,
        rates: Rates,
        factory: BandwidthFactory | None = None,
        store: BandwidthsStore | None = None,
        clock: Clock | None = None,
        listener: UsageListener = NO_OP_LISTENER,
    ):
        if rates is None:
            raise ValueError("rates must not be None")
        self._rates = rates
        self._factory = factory if factory is not None else BandwidthFactory()
        self._store = store if store is not None else MapBandwidthsStore()
        self._clock = clock if clock is not None else SystemClock()
        self._listener = listener
        self._create_lock = threading.Lock()
        self._key_locks: dict[K, threading.Lock] = {}

    @property
    def rates(self) -> Rates:
        return self._rates

    @property
    def store(self) -> BandwidthsStore:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    def bandwidths(self, key: K) -> Bandwidths:
        """The state of ``key``, created if the store does not have it."""
        bandwidths = self._store.get(key)
        if bandwidths is not None:
            return bandwidths
        with self._create_lock:
            bandwidths = self._store.get(key)
            if bandwidths is None:
                bandwidths = self._factory.from_rates(self._rates, self._clock.now)
                self._store.put(key, bandwidths)
                logger.debug("Created bandwidths for key %r: %s", key, self._rates)
        return bandwidths

    def _key_lock(self, key: K) -> threading.Lock:
        with self._create_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def try_reserve(self, key: K, permits: int = 1, timeout: Duration | int | float = Duration.ZERO) -> Duration | None:
        """Reserve without waiting.

        Returns:
            The wait the caller must observe, or None if denied.
        """
        with self._key_lock(key):
            bandwidths = self.bandwidths(key)
            wait = bandwidths.try_reserve(permits, Duration.of(timeout), self._clock.now)
            self._store.put(key, bandwidths)
        return wait

    def try_consume(self, key: K, permits: int = 1, timeout: Duration | int | float = Duration.ZERO) -> bool:
        wait = self.try_reserve(key, permits, timeout)
        if wait is None:
            logger.debug("Denied %d permit(s) for key %r", permits, key)
            self._listener.on_consumed(key, key, permits, self._rates)
            self._listener.on_rejected(key, key, permits, self._rates)
            return False
        if wait:
            logger.debug("Waiting %s for %d permit(s) of key %r", wait, permits, key)
            self._clock.sleep(wait)
        self._listener.on_consumed(key, key, permits, self._rates)
        return True

    def with_store(self, store: BandwidthsStore) -> BandwidthsLimiter[K]:
        return BandwidthsLimiter(self._rates, self._factory, store, self._clock, self._listener)

    def with_listener(self, listener: UsageListener) -> BandwidthsLimiter[K]:
        return BandwidthsLimiter(self._rates, self._factory, self._store, self._clock, listener)

    def __repr__(self) -> str:
        return f"BandwidthsLimiter(rates={self._rates})"


LimiterProvider = Callable[[Node[Any]], ResourceLimiter[Any]]


class DefaultLimiterProvider:
    """Creates one ``BandwidthsLimiter`` per configured node.

    Nodes without a value, or whose value has no limits, get
    ``NO_OP_LIMITER``. Limiters are created on first request and reused.

    Args:
        factory: Bandwidth factory shared by every limiter.
        clock: Clock shared by every limiter.
        store: Store shared by every limiter. When None each node gets a
            private in-process store.
    """

    def __init__(
        self,
        factory: BandwidthFactory | None = None,
        clock: Clock | None = None,
        store: BandwidthsStore | None = None,
    ):
        self._factory = factory if factory is not None else BandwidthFactory()
        self._clock = clock if clock is not None else SystemClock()
        self._store = store
        self._limiters: dict[Node[Any], ResourceLimiter[Any]] = {}
        self._lock = threading.Lock()

    def __call__(self, node: Node[Any]) -> ResourceLimiter[Any]:
        rates = rates_of(node.value)
        if rates is None or not rates.has_limits():
            return NO_OP_LIMITER
        with self._lock:
            limiter = self._limiters.get(node)
            if limiter is None:
                limiter = BandwidthsLimiter(rates, self._factory, self._store, self._clock)
                self._limiters[node] = limiter
            return limiter
