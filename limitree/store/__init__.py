from limitree.store.base import BandwidthsStore, Cache, CacheBandwidthsStore, MapBandwidthsStore
from limitree.store.redis_cache import RedisCache

__all__ = [
    "BandwidthsStore",
    "Cache",
    "CacheBandwidthsStore",
    "MapBandwidthsStore",
    "RedisCache",
]
