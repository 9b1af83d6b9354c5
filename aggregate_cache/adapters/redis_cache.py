"""Redis cache store (optional ``redis`` extra)."""

from __future__ import annotations

from typing import Any

from aggregate_cache.core.config import CacheConfig
from aggregate_cache.core.exceptions import CacheBackendError


class RedisCacheStore:
    """Cache store backed by a redis-py client.

    Snapshots are pickled bytes, so the client must not set
    ``decode_responses``.

    Args:
        client: A ``redis.Redis`` compatible client.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: CacheConfig) -> RedisCacheStore:
        import redis

        if config.url is None:
            raise CacheBackendError("The redis backend needs a url")
        return cls(redis.Redis.from_url(config.url, **config.options))

    def get(self, key: str) -> Any | None:
        import redis

        try:
            return self._client.get(key)
        except redis.RedisError as e:
            raise CacheBackendError(f"Redis GET {key} failed: {e}") from e

    def set(self, key: str, value: Any, ttl: int = 0) -> None:
        import redis

        try:
            if ttl > 0:
                self._client.set(key, value, ex=ttl)
            else:
                self._client.set(key, value)
        except redis.RedisError as e:
            raise CacheBackendError(f"Redis SET {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        import redis

        try:
            self._client.delete(key)
        except redis.RedisError as e:
            raise CacheBackendError(f"Redis DEL {key} failed: {e}") from e
