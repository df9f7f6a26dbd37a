from limitree.bandwidth.all_or_nothing import AllOrNothingBandwidth
from limitree.bandwidth.base import Bandwidth
from limitree.bandwidth.composite import Bandwidths
from limitree.bandwidth.factory import BandwidthConstructor, BandwidthFactory
from limitree.bandwidth.smooth import BurstyBandwidth, SmoothBandwidth, WarmingUpBandwidth

__all__ = [
    "AllOrNothingBandwidth",
    "Bandwidth",
    "BandwidthConstructor",
    "BandwidthFactory",
    "Bandwidths",
    "BurstyBandwidth",
    "SmoothBandwidth",
    "WarmingUpBandwidth",
]
