"""Cache configuration and backend loading.

CacheConfig is a Pydantic model for type-safe cache configuration.
create_cache_store() resolves the configured backend lazily, so optional
client libraries are only imported when their backend is selected.
"""

from __future__ import annotations

import importlib
from typing import Any

from pydantic import BaseModel

from aggregate_cache.core.enums import CacheBackend
from aggregate_cache.core.exceptions import CacheBackendError


class CacheConfig(BaseModel):
    """Configuration for the aggregate cache."""

    backend: str = "memory"
    url: str | None = None
    key_prefix: str = "AggregateModel"
    default_ttl: int = 0
    options: dict[str, Any] = {}


# Backend mapping: backend name -> (module_path, class_name)
_BACKEND_MAP: dict[str, tuple[str, str]] = {
    CacheBackend.MEMORY.value: ("aggregate_cache.adapters.memory", "MemoryCacheStore"),
    CacheBackend.REDIS.value: ("aggregate_cache.adapters.redis_cache", "RedisCacheStore"),
}


def create_cache_store(config: CacheConfig) -> Any:
    """Build the cache store named by ``config.backend``."""
    backend = config.backend.lower()
    if backend not in _BACKEND_MAP:
        raise CacheBackendError(f"Unsupported cache backend: {config.backend}")

    module_path, cls_name = _BACKEND_MAP[backend]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name).from_config(config)
    except (ImportError, AttributeError) as e:
        raise CacheBackendError(f"Failed to load cache backend '{config.backend}': {e}") from e
