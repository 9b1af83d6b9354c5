"""Repository layer - DDD repository pattern."""

from __future__ import annotations

from aggregate_cache.repository.base import AggregateRepository

__all__ = [
    "AggregateRepository",
]
