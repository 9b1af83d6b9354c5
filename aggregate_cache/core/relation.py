"""Lazy relation resolver.

Each aggregate instance owns one Relation per declared relation. Foreign ids
are computed on demand by the relation's finder and, when the relation has a
cache duration, remembered inside the owner's own cache snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aggregate_cache.core.dependency import capture_dependency
from aggregate_cache.mapping.plan import RelationDescriptor

if TYPE_CHECKING:
    from aggregate_cache.core.aggregate import Aggregate

logger = logging.getLogger(__name__)


@dataclass
class RelationCacheEntry:
    """Ids found for a relation, when they were found, and what they depend on."""

    ids: Any
    captured_at: float
    dependency: Any = None


class Relation:
    """Resolves one declared relation for one owning aggregate."""

    def __init__(self, owner: Aggregate, descriptor: RelationDescriptor) -> None:
        self.owner = owner
        self.descriptor = descriptor
        self.cache_entry: RelationCacheEntry | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    def is_cache_valid(self, now: float) -> bool:
        """Whether the stored cache entry can be trusted at time ``now``."""
        entry = self.cache_entry
        duration = self.descriptor.cache_duration
        if entry is None or duration is None:
            return False
        if duration > 0 and now > entry.captured_at + duration:
            return False
        if entry.dependency is not None and entry.dependency.has_changed():
            return False
        return True

    def find_ids(self) -> Any:
        """Return the related id (or ordered id list), from cache when valid."""
        descriptor = self.descriptor
        if descriptor.uses_attribute:
            return self.owner.get_attribute(descriptor.attribute)  # type: ignore[arg-type]

        session = self.owner.session
        now = session.now()
        if self.is_cache_valid(now):
            return self.cache_entry.ids  # type: ignore[union-attr]

        assert descriptor.finder is not None
        ids = descriptor.finder(self.owner.id, self.owner)
        if descriptor.is_many:
            ids = list(ids or [])

        if descriptor.cache_duration is not None:
            self.cache_entry = RelationCacheEntry(
                ids, now, capture_dependency(descriptor.cache_dependency)
            )
            logger.debug(
                "Cached ids for relation %s.%s of %r",
                self.owner.type_name,
                self.name,
                self.owner.id,
            )
            # Metadata only: no version bump, no child store writes
            session.update(self.owner, increment_version=False, persist=False)
        return ids

    def get_data(self) -> Any:
        """Load the related aggregate, or an AggregateList for HAS_MANY."""
        ids = self.find_ids()
        session = self.owner.session
        if self.descriptor.is_many:
            return session.load(self.descriptor.foreign_type, list(ids))
        if ids is None:
            return None
        return session.load(self.descriptor.foreign_type, ids)

    def reset(self) -> None:
        """Drop the cached ids so the next lookup calls the finder."""
        self.cache_entry = None
