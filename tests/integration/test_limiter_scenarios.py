"""End-to-end limiter scenarios.

Builds realistic trees, drives them with a manual clock or real threads, and
checks the admitted traffic against the configured quotas.
"""

from __future__ import annotations

import pickle
import threading
import time

from limitree import (
    Algorithm,
    CacheBandwidthsStore,
    DefaultLimiterProvider,
    DefaultMatcherProvider,
    LimiterSettings,
    ManualClock,
    Matcher,
    MatchedResourceLimiter,
    Node,
    Rate,
    RateConfig,
    Rates,
    UsageRecorder,
    of_node,
    of_rates,
    per_key,
)
from limitree.bandwidth import BandwidthFactory


class PicklingCache:
    """Stands in for a remote cache: every read returns a fresh copy."""

    def __init__(self):
        self._data: dict = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            raw = self._data.get(key)
        return None if raw is None else pickle.loads(raw)

    def put(self, key, value):
        raw = pickle.dumps(value)
        with self._lock:
            self._data[key] = raw


class SlowPicklingCache(PicklingCache):
    """Widens the gap between reading a key and writing it back."""

    def get(self, key):
        value = super().get(key)
        time.sleep(0.05)
        return value


def tenant_matchers(node):
    """Requests are dicts; each node matches on one field and keys by its value."""
    field = {"tenant": "tenant", "user": "user"}.get(node.name)
    if field is None:
        return Matcher(lambda request: None)
    return Matcher(lambda request: request.get(field))


def tenant_tree(tenant_rate: Rate, user_rate: Rate) -> Node[RateConfig]:
    """root -> tenant -> user: every user is capped, and so is the tenant as a whole."""
    root = Node("root")
    tenant = Node("tenant", RateConfig("tenant", Rates.of(tenant_rate)), root)
    Node("user", RateConfig("user", Rates.of(user_rate)), tenant)
    return root


class TestTenantQuotas:

    def test_users_capped_individually_and_tenant_in_total(self):
        clock = ManualClock()
        limiter = of_node(
            tenant_tree(Rate.per_second(5), Rate.per_second(2)),
            matcher_provider=tenant_matchers,
            clock=clock,
        )

        admitted = {"alice": 0, "bob": 0, "carol": 0}
        for _ in range(3):
            for user in admitted:
                if limiter.try_consume({"tenant": "acme", "user": user}):
                    admitted[user] += 1

        # Each user is capped at 2; the tenant cap of 5 cuts off the last one.
        assert admitted == {"alice": 2, "bob": 2, "carol": 1}

        clock.advance(1)
        assert limiter.try_consume({"tenant": "acme", "user": "carol"}) is True

    def test_other_tenant_unaffected(self):
        clock = ManualClock()
        limiter = of_node(
            tenant_tree(Rate.per_second(1), Rate.per_second(10)),
            matcher_provider=tenant_matchers,
            clock=clock,
        )
        assert limiter.try_consume({"tenant": "acme", "user": "a"}) is True
        assert limiter.try_consume({"tenant": "acme", "user": "b"}) is False
        assert limiter.try_consume({"tenant": "globex", "user": "a"}) is True


class TestSharedExternalStore:

    def test_two_processes_share_quota_through_cache(self):
        clock = ManualClock()
        cache = PicklingCache()
        root = tenant_tree(Rate.per_second(3), Rate.per_second(3))

        def build():
            return MatchedResourceLimiter(
                root, tenant_matchers, DefaultLimiterProvider(clock=clock)
            ).with_store(CacheBandwidthsStore(cache))

        worker_a, worker_b = build(), build()
        request = {"tenant": "acme", "user": "alice"}
        results = [worker_a.try_consume(request), worker_b.try_consume(request),
                   worker_a.try_consume(request), worker_b.try_consume(request)]
        assert results == [True, True, True, False]


class TestSmoothAlgorithms:

    def test_bursty_limiter_waits_instead_of_rejecting(self):
        clock = ManualClock()
        settings = LimiterSettings(default_algorithm=Algorithm.BURSTY)
        limiter = of_rates("api", Rate.per_second(10), settings=settings, clock=clock)

        for _ in range(20):
            assert limiter.try_consume("api", timeout=1) is True

        # 20 requests at 10/s: the first is free, the rest are spaced 100 ms apart.
        assert clock.now.to_seconds() == 1.9

    def test_warming_up_limiter_starts_slow(self):
        cold_clock = ManualClock()
        warm_clock = ManualClock()
        cold = of_rates("api", Rate.per_second(10, Algorithm.WARMING_UP), clock=cold_clock)
        steady = of_rates("api", Rate.per_second(10, Algorithm.BURSTY), clock=warm_clock)

        for _ in range(6):
            cold.try_consume("api", timeout=5)
            steady.try_consume("api", timeout=5)

        assert cold_clock.now > warm_clock.now


class TestConcurrency:

    def test_threads_never_exceed_quota(self):
        clock = ManualClock()
        limiter = of_rates("api", Rate.per_minute(50), clock=clock)
        granted = []
        lock = threading.Lock()
        start = threading.Barrier(8)

        def worker():
            start.wait()
            count = 0
            for _ in range(20):
                if limiter.try_consume("api"):
                    count += 1
            with lock:
                granted.append(count)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(granted) == 50

    def test_threads_share_one_key_through_copying_store(self):
        clock = ManualClock()
        limiter = per_key(Rate.per_second(1), clock=clock, store=CacheBandwidthsStore(SlowPicklingCache()))
        start = threading.Barrier(4)
        grants = []
        lock = threading.Lock()

        def worker():
            start.wait()
            granted = limiter.try_consume("k")
            with lock:
                grants.append(granted)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(grants) == [False, False, False, True]

    def test_threads_on_distinct_keys(self):
        clock = ManualClock()
        factory = BandwidthFactory()
        limiter = MatchedResourceLimiter(
            tenant_tree(Rate.per_second(1000), Rate.per_second(5)),
            tenant_matchers,
            DefaultLimiterProvider(factory, clock),
        )
        results: dict[str, int] = {}
        lock = threading.Lock()

        def worker(user):
            count = sum(
                1 for _ in range(10) if limiter.try_consume({"tenant": "acme", "user": user})
            )
            with lock:
                results[user] = count

        threads = [threading.Thread(target=worker, args=(f"user-{i}",)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == {f"user-{i}": 5 for i in range(6)}


class TestConditions:

    def test_condition_matcher_factory_selects_requests(self):
        clock = ManualClock()
        root = Node("root")
        Node("premium", RateConfig("premium", Rates.of(Rate.per_second(1)), condition="gold"), root)

        def by_tier(node, condition):
            return Matcher(lambda request: node.name if request.get("tier") == condition else None)

        limiter = of_node(root, matcher_provider=DefaultMatcherProvider(by_tier), clock=clock)
        assert limiter.try_consume({"tier": "gold"}) is True
        assert limiter.try_consume({"tier": "gold"}) is False
        assert limiter.try_consume({"tier": "free"}) is True


def test_recorder_sees_tree_traffic():
    clock = ManualClock()
    recorder = UsageRecorder(clock)
    limiter = of_node(
        tenant_tree(Rate.per_second(5), Rate.per_second(2)),
        matcher_provider=tenant_matchers,
        clock=clock,
        listener=recorder,
    )
    for _ in range(3):
        limiter.try_consume({"tenant": "acme", "user": "alice"})

    df = recorder.to_dataframe()
    assert set(df["resource_id"]) == {"alice", "acme"}
    assert df["rejected"].sum() == 1
