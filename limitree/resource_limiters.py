"""Shortcuts for assembling limiters with default collaborators."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from limitree.bandwidth.factory import BandwidthConstructor, BandwidthFactory
from limitree.core.clock import Clock
from limitree.limiter import BandwidthsLimiter, DefaultLimiterProvider
from limitree.listener import NO_OP_LISTENER, UsageListener
from limitree.matcher import MatcherProvider
from limitree.node import Node
from limitree.rates import Rate, RateConfig, Rates
from limitree.settings import LimiterSettings
from limitree.store.base import BandwidthsStore
from limitree.tree import MatchedResourceLimiter


def of_node(
    root: Node[Any],
    *,
    matcher_provider: MatcherProvider | None = None,
    settings: LimiterSettings | None = None,
    plugins: Mapping[str, BandwidthConstructor] | None = None,
    clock: Clock | None = None,
    store: BandwidthsStore | None = None,
    listener: UsageListener = NO_OP_LISTENER,
    first_match_only: bool = False,
) -> MatchedResourceLimiter[Any]:
    """Evaluator over ``root`` with a default limiter provider.

    Args:
        root: Tree of ``RateConfig`` nodes.
        matcher_provider: Defaults to matching requests against node names.
        settings: Bandwidth defaults.
        plugins: Extra bandwidth algorithms by name.
        clock: Time source. Defaults to the system clock.
        store: Shared state store. Defaults to one in-process map per node.
        listener: Usage sink.
        first_match_only: Stop after the first chain that consumed anything.
    """
    factory = BandwidthFactory(settings, plugins)
    return MatchedResourceLimiter(
        root,
        matcher_provider=matcher_provider,
        limiter_provider=DefaultLimiterProvider(factory, clock, store),
        first_match_only=first_match_only,
        listener=listener,
    )


def of_rates(resource_id: str, rates: Rates | Rate, **kwargs: Any) -> MatchedResourceLimiter[Any]:
    """Evaluator for a single resource named ``resource_id``.

    With the default matcher provider, requests equal to ``resource_id`` are
    limited and everything else passes.
    """
    if isinstance(rates, Rate):
        rates = Rates.of(rates)
    root: Node[RateConfig] = Node("root")
    Node(resource_id, RateConfig(resource_id, rates), root)
    return of_node(root, **kwargs)


def per_key(
    rates: Rates | Rate,
    *,
    settings: LimiterSettings | None = None,
    clock: Clock | None = None,
    store: BandwidthsStore | None = None,
) -> BandwidthsLimiter[Any]:
    """A flat limiter applying ``rates`` to every key independently."""
    if isinstance(rates, Rate):
        rates = Rates.of(rates)
    return BandwidthsLimiter(rates, BandwidthFactory(settings), store, clock)
