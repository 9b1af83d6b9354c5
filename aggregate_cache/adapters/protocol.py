"""Collaborator protocols.

Every child store and cache backend MUST implement these protocols. The
session only talks to its collaborators through them.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ChildModelStore(Protocol):
    """Store owning the child records aggregates are assembled from."""

    def primary_key(self, model_key: str) -> str:
        """Name of the primary key field for a model."""
        ...

    def find_by_field(self, model_key: str, field: str, value: Any) -> Any | None:
        """Find one record whose ``field`` equals ``value``, or None."""
        ...

    def persist(self, model_key: str, record: Any) -> bool:
        """Insert or update a record. Returns False if the write was rejected."""
        ...

    def create(self, model_key: str, **values: Any) -> Any:
        """Build a new, unsaved record."""
        ...


@runtime_checkable
class CacheStore(Protocol):
    """Key/value cache holding aggregate snapshots."""

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss."""
        ...

    def set(self, key: str, value: Any, ttl: int = 0) -> None:
        """Store a value. ``ttl`` is in seconds, 0 meaning no expiry."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...
