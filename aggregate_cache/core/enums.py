"""Relation, save outcome and cache backend enumerations."""

from __future__ import annotations

from enum import Enum


class RelationType(Enum):
    """Kinds of relation between aggregates."""

    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"


class SaveStatus(Enum):
    """Outcome of Session.save and Session.update."""

    OK = "ok"
    VALIDATION_FAILED = "validation_failed"
    PERSIST_FAILED = "persist_failed"


class CacheBackend(Enum):
    """Supported cache backends."""

    MEMORY = "memory"
    REDIS = "redis"
