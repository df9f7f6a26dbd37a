"""limitree: hierarchical rate limiting.

Quotas are declared as ``Rates`` on the nodes of a ``Node`` tree and
enforced by ``MatchedResourceLimiter``, which charges a request against
every matching node from a leaf up towards the root.
"""

import logging

from limitree.bandwidth import (
    AllOrNothingBandwidth,
    Bandwidth,
    BandwidthFactory,
    Bandwidths,
    BurstyBandwidth,
    WarmingUpBandwidth,
)
from limitree.core import Clock, Duration, Instant, ManualClock, SystemClock
from limitree.instrumentation import UsageRecord, UsageRecorder
from limitree.limiter import (
    NO_OP_LIMITER,
    BandwidthsLimiter,
    DefaultLimiterProvider,
    ResourceLimiter,
)
from limitree.listener import NO_OP_LISTENER, LoggingUsageListener, UsageListener
from limitree.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)
from limitree.matcher import (
    IDENTITY,
    MATCH_NONE,
    DefaultMatcherProvider,
    Matcher,
    MatcherProvider,
    node_name_matcher,
)
from limitree.node import Node, format_tree
from limitree.rates import Algorithm, NodeValue, Operator, Rate, RateConfig, Rates
from limitree.resource_limiters import of_node, of_rates, per_key
from limitree.settings import LimiterSettings
from limitree.store import (
    BandwidthsStore,
    Cache,
    CacheBandwidthsStore,
    MapBandwidthsStore,
    RedisCache,
)
from limitree.tree import MatchedResourceLimiter, VisitResult

logging.getLogger("limitree").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Time
    "Clock",
    "Duration",
    "Instant",
    "ManualClock",
    "SystemClock",
    # Configuration
    "Algorithm",
    "LimiterSettings",
    "NodeValue",
    "Operator",
    "Rate",
    "RateConfig",
    "Rates",
    # Bandwidths
    "AllOrNothingBandwidth",
    "Bandwidth",
    "BandwidthFactory",
    "Bandwidths",
    "BurstyBandwidth",
    "WarmingUpBandwidth",
    # Tree
    "Node",
    "format_tree",
    # Matching
    "DefaultMatcherProvider",
    "IDENTITY",
    "MATCH_NONE",
    "Matcher",
    "MatcherProvider",
    "node_name_matcher",
    # Limiters
    "BandwidthsLimiter",
    "DefaultLimiterProvider",
    "MatchedResourceLimiter",
    "NO_OP_LIMITER",
    "ResourceLimiter",
    "VisitResult",
    "of_node",
    "of_rates",
    "per_key",
    # Stores
    "BandwidthsStore",
    "Cache",
    "CacheBandwidthsStore",
    "MapBandwidthsStore",
    "RedisCache",
    # Listeners
    "LoggingUsageListener",
    "NO_OP_LISTENER",
    "UsageListener",
    "UsageRecord",
    "UsageRecorder",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]
