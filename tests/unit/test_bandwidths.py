"""Unit tests for the Bandwidths composite and the BandwidthFactory."""

from __future__ import annotations

import pickle

import pytest

from limitree.bandwidth import (
    AllOrNothingBandwidth,
    BandwidthFactory,
    Bandwidths,
    BurstyBandwidth,
    WarmingUpBandwidth,
)
from limitree.core.temporal import Duration, Instant
from limitree.rates import Algorithm, Operator, Rate, Rates
from limitree.settings import LimiterSettings

T0 = Instant.Epoch
ZERO = Duration.ZERO
SECOND = Duration.from_seconds(1)


def window(permits: int) -> AllOrNothingBandwidth:
    return AllOrNothingBandwidth(permits, SECOND, T0)


class TestBandwidthsOperators:

    def test_and_exceeded_when_any_member_fails(self):
        bw = Bandwidths([window(5), window(1)], Operator.AND)
        assert bw.try_acquire(1, ZERO, T0) is True
        assert bw.try_acquire(1, ZERO, T0) is False

    def test_and_tighter_member_dominates(self):
        """Rates AND(5/s, 10/min): after 5 grants in the first second, the 6th is denied."""
        bw = Bandwidths(
            [AllOrNothingBandwidth(5, SECOND, T0), AllOrNothingBandwidth(10, Duration.from_seconds(60), T0)],
            Operator.AND,
        )
        results = [bw.try_acquire(1, ZERO, Instant.from_seconds(0.1 * i)) for i in range(6)]
        assert results == [True] * 5 + [False]

    def test_or_exceeded_only_when_all_members_fail(self):
        bw = Bandwidths([window(1), window(2)], Operator.OR)
        assert bw.try_acquire(1, ZERO, T0) is True
        assert bw.try_acquire(1, ZERO, T0) is True
        assert bw.try_acquire(1, ZERO, T0) is False

    def test_none_never_exceeded(self):
        bw = Bandwidths([window(0), window(0)], Operator.NONE)
        assert bw.try_acquire(1, ZERO, T0) is True

    def test_empty_never_exceeded(self):
        assert Bandwidths.empty().try_acquire(100, ZERO, T0) is True

    def test_every_member_is_attempted(self):
        """No short-circuit: the second member is charged even when the first fails."""
        first = window(0)
        second = window(3)
        bw = Bandwidths([first, second], Operator.AND)
        assert bw.try_acquire(1, ZERO, T0) is False
        assert second.remaining == 2

    def test_no_rollback_on_rejection(self):
        """Members that granted keep their consumption when the composite is rejected."""
        loose = window(10)
        tight = window(1)
        bw = Bandwidths([loose, tight], Operator.AND)
        bw.try_acquire(1, ZERO, T0)
        bw.try_acquire(1, ZERO, T0)
        assert loose.remaining == 8

    def test_wait_is_longest_among_granted(self):
        fast = BurstyBandwidth(10, SECOND, T0)
        slow = BurstyBandwidth(1, SECOND, T0)
        bw = Bandwidths([fast, slow], Operator.AND)
        assert bw.try_reserve(1, ZERO, T0) == ZERO
        wait = bw.try_reserve(1, Duration.from_seconds(5), T0)
        assert wait == SECOND

    def test_is_exceeded_counts(self):
        bw = Bandwidths([window(1), window(1), window(1)], Operator.OR)
        assert bw.is_exceeded(2) is False
        assert bw.is_exceeded(3) is True

    def test_rejects_none_operator(self):
        with pytest.raises(ValueError):
            Bandwidths([], None)

    def test_pickle_round_trip_keeps_state(self):
        bw = Bandwidths([window(2)], Operator.AND)
        bw.try_acquire(1, ZERO, T0)
        restored = pickle.loads(pickle.dumps(bw))
        assert restored.operator is Operator.AND
        assert restored.try_acquire(1, ZERO, T0) is True
        assert restored.try_acquire(1, ZERO, T0) is False

    def test_copy_at_is_fresh(self):
        bw = Bandwidths([window(1)], Operator.AND)
        bw.try_acquire(1, ZERO, T0)
        assert bw.copy_at(T0).try_acquire(1, ZERO, T0) is True


class TestBandwidthFactory:

    def test_default_algorithm_is_all_or_nothing(self):
        bw = BandwidthFactory().from_rate(Rate.per_second(5), T0)
        assert isinstance(bw, AllOrNothingBandwidth)

    def test_rate_algorithm_overrides_default(self):
        factory = BandwidthFactory()
        assert isinstance(factory.from_rate(Rate.per_second(5, Algorithm.BURSTY), T0), BurstyBandwidth)
        assert isinstance(factory.from_rate(Rate.per_second(5, "warming-up"), T0), WarmingUpBandwidth)

    def test_settings_select_default_and_parameters(self):
        settings = LimiterSettings(
            default_algorithm=Algorithm.WARMING_UP,
            warmup_period=Duration.from_seconds(2),
            cold_factor=4.0,
        )
        bw = BandwidthFactory(settings).from_rate(Rate.per_second(10), T0)
        assert isinstance(bw, WarmingUpBandwidth)
        assert bw.warmup_period == Duration.from_seconds(2)
        assert bw.cold_factor == 4.0

    def test_bursty_uses_max_burst_seconds(self):
        settings = LimiterSettings(default_algorithm=Algorithm.BURSTY, max_burst_seconds=3.0)
        bw = BandwidthFactory(settings).from_rate(Rate.per_second(10), T0)
        assert bw.max_burst_seconds == 3.0

    def test_unknown_algorithm_raises(self):
        with pytest.raises(ValueError, match="Unknown bandwidth algorithm"):
            BandwidthFactory().from_rate(Rate.per_second(1, "leaky"), T0)

    def test_plugin_is_selected_by_name(self):
        created = []

        def leaky(permits, duration, now):
            created.append((permits, duration))
            return AllOrNothingBandwidth(permits, duration, now)

        factory = BandwidthFactory(plugins={"leaky": leaky})
        factory.from_rate(Rate.per_second(3, "leaky"), T0)
        assert created == [(3, SECOND)]

    def test_with_plugin_returns_new_factory(self):
        base = BandwidthFactory()
        extended = base.with_plugin("window", lambda p, d, now: AllOrNothingBandwidth(p, d, now))
        assert isinstance(extended.from_rate(Rate.per_second(1, "window"), T0), AllOrNothingBandwidth)
        with pytest.raises(ValueError):
            base.from_rate(Rate.per_second(1, "window"), T0)

    def test_empty_rates_give_empty_bandwidths(self):
        bw = BandwidthFactory().from_rates(Rates.empty(), T0)
        assert not bw.has_members()

    def test_members_follow_limit_order(self):
        rates = Rates.and_(Rate.per_second(5), Rate.per_minute(100, Algorithm.BURSTY))
        bw = BandwidthFactory().from_rates(rates, T0)
        assert bw.operator is Operator.AND
        assert [type(m) for m in bw.members] == [AllOrNothingBandwidth, BurstyBandwidth]

    def test_none_operator_with_limits_evaluated_as_or(self):
        rates = Rates(Operator.NONE, (Rate.per_second(1), Rate.per_second(1)))
        bw = BandwidthFactory().from_rates(rates, T0)
        assert bw.operator is Operator.OR
        assert bw.try_acquire(1, ZERO, T0) is True
        assert bw.try_acquire(1, ZERO, T0) is False
