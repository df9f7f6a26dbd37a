"""Where per-key bandwidth state lives between requests."""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol, runtime_checkable

from limitree.bandwidth.composite import Bandwidths

logger = logging.getLogger(__name__)


@runtime_checkable
class BandwidthsStore(Protocol):
    """Maps a limiter key to the key's ``Bandwidths``.

    Implementations must be thread-safe. ``get`` returns None for keys never
    written.
    """

    def get(self, key: Any) -> Bandwidths | None: ...

    def put(self, key: Any, bandwidths: Bandwidths) -> None: ...


@runtime_checkable
class Cache(Protocol):
    """Minimal key/value cache a store can be backed by."""

    def get(self, key: Any) -> Any | None: ...

    def put(self, key: Any, value: Any) -> None: ...


class MapBandwidthsStore:
    """In-process store backed by a dict."""

    def __init__(self):
        self._entries: dict[Any, Bandwidths] = {}
        self._lock = threading.Lock()

    def get(self, key: Any) -> Bandwidths | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: Any, bandwidths: Bandwidths) -> None:
        with self._lock:
            self._entries[key] = bandwidths

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            return key in self._entries


class CacheBandwidthsStore:
    """Store that delegates to an external ``Cache``.

    State read from a remote cache is a copy; it is only shared with other
    processes once written back with ``put``.
    """

    def __init__(self, cache: Cache):
        if cache is None:
            raise ValueError("cache must not be None")
        self._cache = cache

    @property
    def cache(self) -> Cache:
        return self._cache

    def get(self, key: Any) -> Bandwidths | None:
        return self._cache.get(key)

    def put(self, key: Any, bandwidths: Bandwidths) -> None:
        self._cache.put(key, bandwidths)
