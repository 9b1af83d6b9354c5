"""In-process adapters: a TTL-aware cache store and a child record store."""

from __future__ import annotations

import copy
import time
from typing import Any, Callable

from aggregate_cache.core.config import CacheConfig
from aggregate_cache.core.exceptions import StoreError
from aggregate_cache.mapping.resolver import get_field, resolve, set_field


class MemoryCacheStore:
    """Dict-backed cache store with per-key expiry.

    Args:
        clock: Returns the current time in seconds. Injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[Any, float | None]] = {}

    @classmethod
    def from_config(cls, config: CacheConfig) -> MemoryCacheStore:
        return cls()

    def get(self, key: str) -> Any | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: int = 0) -> None:
        expires_at = self._clock() + ttl if ttl > 0 else None
        self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._data)


class MemoryChildStore:
    """Dict-backed child record store.

    Records are deep-copied on the way in and out, nested records included,
    so callers only ever see their changes after a successful ``persist``. Integer primary keys are
    assigned to records persisted without one.
    """

    def __init__(self) -> None:
        self._factories: dict[str, Callable[..., Any]] = {}
        self._primary_keys: dict[str, str] = {}
        self._records: dict[str, dict[Any, Any]] = {}

    def register(
        self,
        model_key: str,
        factory: Callable[..., Any] = dict,
        primary_key: str = "id",
    ) -> MemoryChildStore:
        """Declare a model, the callable building its records, and its key field."""
        self._factories[model_key] = factory
        self._primary_keys[model_key] = primary_key
        self._records.setdefault(model_key, {})
        return self

    def _table(self, model_key: str) -> dict[Any, Any]:
        try:
            return self._records[model_key]
        except KeyError:
            raise StoreError(f"Unknown model: '{model_key}'") from None

    def primary_key(self, model_key: str) -> str:
        self._table(model_key)
        return self._primary_keys[model_key]

    def create(self, model_key: str, **values: Any) -> Any:
        self._table(model_key)
        return self._factories[model_key](**values)

    def add(self, model_key: str, record: Any) -> Any:
        """Persist a record directly and return it."""
        if not self.persist(model_key, record):
            raise StoreError(f"Could not add record to '{model_key}'")
        return record

    def find_by_field(self, model_key: str, field: str, value: Any) -> Any | None:
        for record in self._table(model_key).values():
            resolved = resolve(record, field)
            if resolved is not None and get_field(*resolved) == value:
                return copy.deepcopy(record)
        return None

    def persist(self, model_key: str, record: Any) -> bool:
        table = self._table(model_key)
        pk = self._primary_keys[model_key]
        key = get_field(record, pk)
        if key is None:
            key = max((k for k in table if isinstance(k, int)), default=0) + 1
            set_field(record, pk, key)
        table[key] = copy.deepcopy(record)
        return True

    def records(self, model_key: str) -> list[Any]:
        """All stored records of a model, as copies."""
        return [copy.deepcopy(record) for record in self._table(model_key).values()]
