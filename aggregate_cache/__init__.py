"""aggregate-cache - versioned, cache-resident aggregates over child records."""

from __future__ import annotations

from aggregate_cache.adapters.memory import MemoryCacheStore, MemoryChildStore
from aggregate_cache.core.aggregate import Aggregate
from aggregate_cache.core.collection import AggregateList
from aggregate_cache.core.config import CacheConfig, create_cache_store
from aggregate_cache.core.dependency import (
    CacheDependency,
    CacheKeyDependency,
    CallbackDependency,
)
from aggregate_cache.core.engine import Engine, SaveResult, Session
from aggregate_cache.core.enums import CacheBackend, RelationType, SaveStatus
from aggregate_cache.core.exceptions import (
    AggregateCacheError,
    AggregateNotFoundError,
    AggregateTypeNotFoundError,
    CacheBackendError,
    CacheError,
    ColumnMismatchError,
    DeclarationError,
    DuplicateAggregateTypeError,
    MappingError,
    RegistryError,
    SnapshotError,
    StoreError,
    UnknownAttributeError,
)
from aggregate_cache.core.identity import IdentityMap
from aggregate_cache.core.registry import AggregateRegistry
from aggregate_cache.core.relation import Relation, RelationCacheEntry
from aggregate_cache.mapping.builder import aggregate
from aggregate_cache.mapping.plan import AggregateDefinition, Transformer
from aggregate_cache.repository.base import AggregateRepository

__all__ = [
    # Config
    "CacheConfig",
    "create_cache_store",
    # Engine
    "Engine",
    "Session",
    "SaveResult",
    "IdentityMap",
    # Registry and declarations
    "AggregateRegistry",
    "AggregateDefinition",
    "Transformer",
    "aggregate",
    # Aggregates
    "Aggregate",
    "AggregateList",
    "Relation",
    "RelationCacheEntry",
    "AggregateRepository",
    # Dependencies
    "CacheDependency",
    "CallbackDependency",
    "CacheKeyDependency",
    # Adapters
    "MemoryCacheStore",
    "MemoryChildStore",
    # Enums
    "CacheBackend",
    "RelationType",
    "SaveStatus",
    # Exceptions
    "AggregateCacheError",
    "RegistryError",
    "AggregateTypeNotFoundError",
    "DuplicateAggregateTypeError",
    "DeclarationError",
    "MappingError",
    "ColumnMismatchError",
    "UnknownAttributeError",
    "AggregateNotFoundError",
    "StoreError",
    "CacheError",
    "CacheBackendError",
    "SnapshotError",
]
