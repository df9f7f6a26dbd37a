"""Redis-backed ``Cache`` for sharing bandwidth state between processes."""

from __future__ import annotations

import logging
import pickle
from typing import Any

import redis

logger = logging.getLogger(__name__)


class RedisCache:
    """Stores pickled values in Redis under a common key prefix.

    Concurrent writers to the same key are last-writer-wins; Redis is used as
    shared storage, not as a lock.

    Values are unpickled on read. Anyone able to write under ``prefix`` can
    run code in every process reading from it, so the Redis instance must
    only be writable by trusted clients.

    Args:
        client: A synchronous redis-py client.
        prefix: Prepended to every key.
        ttl_seconds: Expiry applied on every write. None keeps entries forever.
    """

    DEFAULT_PREFIX = "limitree:bandwidths:"

    def __init__(self, client: redis.Redis, prefix: str = DEFAULT_PREFIX, ttl_seconds: int | None = None):
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self._client = client
        self._prefix = prefix
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisCache:
        client = redis.Redis.from_url(url, socket_connect_timeout=5, socket_timeout=5)
        return cls(client, **kwargs)

    def _key(self, key: Any) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: Any) -> Any | None:
        raw = self._client.get(self._key(key))
        if raw is None:
            return None
        return pickle.loads(raw)

    def put(self, key: Any, value: Any) -> None:
        data = pickle.dumps(value)
        if self._ttl_seconds is None:
            self._client.set(self._key(key), data)
        else:
            self._client.set(self._key(key), data, ex=self._ttl_seconds)
        logger.debug("Stored %d bytes under %s", len(data), self._key(key))

    def delete(self, key: Any) -> None:
        self._client.delete(self._key(key))
