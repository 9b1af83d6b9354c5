"""aggregate-cache exception hierarchy.

All exceptions are aggregate-cache specific. Raw driver exceptions from
child stores or cache backends are wrapped, never exposed to callers.
"""

from __future__ import annotations

from typing import Any


class AggregateCacheError(Exception):
    """Base exception for all aggregate-cache errors."""


# --- Registry ---


class RegistryError(AggregateCacheError):
    """Base for aggregate registry errors."""


class AggregateTypeNotFoundError(RegistryError):
    """Raised when an aggregate type name is not registered."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Aggregate type not registered: '{type_name}'")


class DuplicateAggregateTypeError(RegistryError):
    """Raised when two definitions are registered under the same name."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Duplicate aggregate type '{type_name}'")


# --- Declaration ---


class DeclarationError(AggregateCacheError):
    """Raised when an aggregate definition fails validation during build()."""


# --- Mapping ---


class MappingError(AggregateCacheError):
    """Base for mapping errors."""


class ColumnMismatchError(MappingError):
    """Raised when a child record class cannot be built from a stored row."""

    def __init__(self, target_class: str, missing_fields: list[str]) -> None:
        self.target_class = target_class
        self.missing_fields = missing_fields
        super().__init__(f"Cannot map to {target_class}: missing fields {missing_fields}")


class UnknownAttributeError(MappingError, AttributeError):
    """Raised when reading or writing a name the aggregate does not declare."""

    def __init__(self, type_name: str, name: str) -> None:
        self.type_name = type_name
        self.name = name
        super().__init__(f"Aggregate '{type_name}' has no attribute or relation '{name}'")


# --- Loading ---


class AggregateNotFoundError(AggregateCacheError):
    """Raised by Session.get when an aggregate cannot be assembled."""

    def __init__(self, type_name: str, aggregate_id: Any) -> None:
        self.type_name = type_name
        self.aggregate_id = aggregate_id
        super().__init__(f"Aggregate {type_name}({aggregate_id!r}) not found")


# --- Child store ---


class StoreError(AggregateCacheError):
    """Raised on child model store failures other than a rejected write."""


# --- Cache ---


class CacheError(AggregateCacheError):
    """Base for cache store errors."""


class CacheBackendError(CacheError):
    """Raised when a cache backend cannot be loaded or reached."""


class SnapshotError(CacheError):
    """Raised when a snapshot cannot be encoded for, or decoded from, the cache."""

    def __init__(self, key: str, detail: str) -> None:
        self.key = key
        super().__init__(f"Invalid snapshot at '{key}': {detail}")
