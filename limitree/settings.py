"""Explicit configuration for bandwidth construction.

Settings are a value passed to whatever builds bandwidths. Nothing reads them
from a global; ``LimiterSettings.from_env`` exists for applications that want
environment-driven configuration and call it themselves.

Environment variables read by ``from_env``:
    LIMITREE_BANDWIDTH_ALGORITHM: Default algorithm (all_or_nothing, bursty, warming_up)
    LIMITREE_MAX_BURST_SECONDS: Burst capacity of bursty bandwidths, in seconds
    LIMITREE_WARMUP_SECONDS: Warm-up period of warming-up bandwidths
    LIMITREE_COLD_FACTOR: Cold interval multiplier of warming-up bandwidths
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from limitree.core.temporal import Duration
from limitree.rates import Algorithm

logger = logging.getLogger(__name__)

ENV_PREFIX = "LIMITREE_"


@dataclass(frozen=True)
class LimiterSettings:
    """Defaults applied when a rate does not name its own algorithm.

    Args:
        default_algorithm: Algorithm for rates without one. A plugin name is
            accepted as long as the factory using these settings knows it.
        max_burst_seconds: Seconds of unused permits a bursty bandwidth keeps.
        warmup_period: Time a cold warming-up bandwidth takes to reach its
            stable rate.
        cold_factor: Cold interval as a multiple of the stable interval.

    Raises:
        ValueError: If a numeric setting is out of range.
    """

    default_algorithm: Algorithm | str = Algorithm.ALL_OR_NOTHING
    max_burst_seconds: float = 1.0
    warmup_period: Duration = Duration.from_seconds(1)
    cold_factor: float = 3.0

    def __post_init__(self):
        if not self.default_algorithm:
            raise ValueError("default_algorithm must not be empty")
        if self.max_burst_seconds <= 0:
            raise ValueError(f"max_burst_seconds must be > 0, got {self.max_burst_seconds}")
        warmup = Duration.of(self.warmup_period)
        if warmup.nanoseconds <= 0:
            raise ValueError(f"warmup_period must be > 0, got {warmup}")
        if self.cold_factor < 1.0:
            raise ValueError(f"cold_factor must be >= 1.0, got {self.cold_factor}")
        object.__setattr__(self, "warmup_period", warmup)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LimiterSettings:
        """Build settings from ``LIMITREE_*`` environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable holds an unparseable or out-of-range value.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        algorithm = env.get(f"{ENV_PREFIX}BANDWIDTH_ALGORITHM", "").strip()
        if algorithm:
            kwargs["default_algorithm"] = Algorithm.parse(algorithm)

        burst = env.get(f"{ENV_PREFIX}MAX_BURST_SECONDS", "").strip()
        if burst:
            kwargs["max_burst_seconds"] = _parse_float("MAX_BURST_SECONDS", burst)

        warmup = env.get(f"{ENV_PREFIX}WARMUP_SECONDS", "").strip()
        if warmup:
            kwargs["warmup_period"] = Duration.from_seconds(_parse_float("WARMUP_SECONDS", warmup))

        cold = env.get(f"{ENV_PREFIX}COLD_FACTOR", "").strip()
        if cold:
            kwargs["cold_factor"] = _parse_float("COLD_FACTOR", cold)

        settings = cls(**kwargs)
        logger.debug("Limiter settings from environment: %s", settings)
        return settings


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None
