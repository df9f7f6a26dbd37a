"""Turns rate configuration into live bandwidth state."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from limitree.bandwidth.all_or_nothing import AllOrNothingBandwidth
from limitree.bandwidth.base import Bandwidth
from limitree.bandwidth.composite import Bandwidths
from limitree.bandwidth.smooth import BurstyBandwidth, WarmingUpBandwidth
from limitree.core.temporal import Duration, Instant
from limitree.rates import Algorithm, Operator, Rate, Rates
from limitree.settings import LimiterSettings

logger = logging.getLogger(__name__)

BandwidthConstructor = Callable[[int, Duration, Instant], Bandwidth]


class BandwidthFactory:
    """Creates bandwidths for rates.

    Built-in algorithms are selected from the ``Algorithm`` enum. Additional
    algorithms can be registered by name through ``plugins``; a plugin name
    takes precedence over a built-in of the same name.

    Args:
        settings: Default algorithm and variant parameters.
        plugins: Extra constructors keyed by algorithm name.
    """

    def __init__(
        self,
        settings: LimiterSettings | None = None,
        plugins: Mapping[str, BandwidthConstructor] | None = None,
    ):
        self._settings = settings if settings is not None else LimiterSettings()
        self._plugins: dict[str, BandwidthConstructor] = dict(plugins or {})

    @property
    def settings(self) -> LimiterSettings:
        return self._settings

    def with_plugin(self, name: str, constructor: BandwidthConstructor) -> BandwidthFactory:
        """A factory that additionally knows ``name``."""
        return BandwidthFactory(self._settings, {**self._plugins, name: constructor})

    def create(
        self,
        permits: int,
        duration: Duration,
        now: Instant,
        algorithm: Algorithm | str | None = None,
    ) -> Bandwidth:
        """Create one bandwidth.

        Raises:
            ValueError: If the algorithm is unknown or the rate is invalid.
        """
        selected = algorithm if algorithm is not None else self._settings.default_algorithm
        if not isinstance(selected, Algorithm) and selected in self._plugins:
            return self._plugins[selected](permits, duration, now)

        match Algorithm.parse(selected):
            case Algorithm.ALL_OR_NOTHING:
                return AllOrNothingBandwidth(permits, duration, now)
            case Algorithm.BURSTY:
                return BurstyBandwidth(permits, duration, now, self._settings.max_burst_seconds)
            case Algorithm.WARMING_UP:
                return WarmingUpBandwidth(
                    permits, duration, now, self._settings.warmup_period, self._settings.cold_factor
                )

    def from_rate(self, rate: Rate, now: Instant) -> Bandwidth:
        return self.create(rate.permits, rate.duration, now, rate.algorithm)

    def from_rates(self, rates: Rates, now: Instant) -> Bandwidths:
        """Convert a rate bundle into the per-key composite.

        An empty bundle yields an empty composite. A bundle that has limits
        but the NONE operator is evaluated as OR.
        """
        if not rates.has_limits():
            return Bandwidths.empty()
        operator = Operator.OR if rates.operator is Operator.NONE else rates.operator
        members = [self.from_rate(rate, now) for rate in rates.limits]
        logger.debug("Created %d bandwidth(s) under %s for %s", len(members), operator.name, rates)
        return Bandwidths(members, operator)
