"""Aggregate instances.

An aggregate stores its attributes in an explicit map keyed by the logical
names declared in its definition. Attribute-style access is validated
against that map; relation names resolve lazily through Relation objects.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from aggregate_cache.core.dependency import dependency_data, restore_dependency
from aggregate_cache.core.exceptions import UnknownAttributeError
from aggregate_cache.core.relation import Relation, RelationCacheEntry
from aggregate_cache.core.snapshot import AggregateSnapshot, RelationCacheSnapshot
from aggregate_cache.mapping.plan import AggregateDefinition

if TYPE_CHECKING:
    from aggregate_cache.core.engine import SaveResult, Session


class Aggregate:
    """A versioned, cacheable view over one or more child records.

    Instances are created by a Session (``load`` or ``create``), never
    directly by callers. ``skip_identity_map`` records that the instance was
    loaded around the identity map; later cache writes keep it out as well.
    """

    def __init__(self, definition: AggregateDefinition, session: Session) -> None:
        object.__setattr__(self, "definition", definition)
        object.__setattr__(self, "session", session)
        object.__setattr__(self, "is_new", True)
        object.__setattr__(self, "skip_identity_map", False)
        attributes: dict[str, Any] = {}
        for name in definition.attribute_names():
            attributes[name] = definition.defaults.get(name)
        attributes["version"] = 1
        object.__setattr__(self, "_attributes", attributes)
        object.__setattr__(
            self,
            "_relations",
            {name: Relation(self, desc) for name, desc in definition.relations.items()},
        )

    # --- attribute access ---

    def __getattr__(self, name: str) -> Any:
        # Only called when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        attributes = self.__dict__["_attributes"]
        if name in attributes:
            return attributes[name]
        relations = self.__dict__["_relations"]
        if name in relations:
            return relations[name].get_data()
        raise UnknownAttributeError(self.definition.name, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.__dict__ or isinstance(getattr(type(self), name, None), property):
            object.__setattr__(self, name, value)
            return
        self.set_attribute(name, value)

    @property
    def type_name(self) -> str:
        return self.definition.name

    def attribute_names(self) -> list[str]:
        return self.definition.attribute_names()

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    def get_attribute(self, name: str) -> Any:
        try:
            return self._attributes[name]
        except KeyError:
            raise UnknownAttributeError(self.definition.name, name) from None

    def set_attribute(self, name: str, value: Any) -> None:
        if name not in self._attributes:
            raise UnknownAttributeError(self.definition.name, name)
        self._attributes[name] = value

    def get_attributes(self, names: list[str] | None = None) -> dict[str, Any]:
        """Return attribute values, all of them or only ``names``."""
        if names is None:
            return dict(self._attributes)
        return {name: self.get_attribute(name) for name in names}

    def set_attributes(self, values: dict[str, Any]) -> None:
        for name, value in values.items():
            self.set_attribute(name, value)

    # --- relations ---

    @property
    def relations(self) -> dict[str, Relation]:
        return dict(self._relations)

    def relation(self, name: str) -> Relation:
        try:
            return self._relations[name]
        except KeyError:
            raise UnknownAttributeError(self.definition.name, name) from None

    def related(self, name: str) -> Any:
        """Load the aggregate(s) behind a relation."""
        return self.relation(name).get_data()

    # --- persistence shortcuts ---

    def save(self, run_validation: bool = True) -> SaveResult:
        return self.session.save(self, run_validation=run_validation)

    def update(self, increment_version: bool = True, persist: bool = True) -> SaveResult:
        return self.session.update(self, increment_version=increment_version, persist=persist)

    # --- snapshots ---

    def to_snapshot(self) -> AggregateSnapshot:
        attributes = {
            name: value
            for name, value in self._attributes.items()
            if name not in ("id", "version")
        }
        relations = {
            name: RelationCacheSnapshot(
                ids=rel.cache_entry.ids,
                captured_at=rel.cache_entry.captured_at,
                dependency=dependency_data(rel.cache_entry.dependency),
            )
            for name, rel in self._relations.items()
            if rel.cache_entry is not None
        }
        return AggregateSnapshot(
            type=self.definition.name,
            id=self.id,
            version=self.version,
            attributes=attributes,
            relations=relations,
        )

    def restore_snapshot(self, snapshot: AggregateSnapshot) -> None:
        """Load state from a snapshot, ignoring names no longer declared."""
        for name, value in snapshot.attributes.items():
            if name in self._attributes:
                self._attributes[name] = value
        self._attributes["id"] = snapshot.id
        self._attributes["version"] = snapshot.version
        for name, cached in snapshot.relations.items():
            relation = self._relations.get(name)
            if relation is None:
                continue
            relation.cache_entry = RelationCacheEntry(
                cached.ids,
                cached.captured_at,
                restore_dependency(relation.descriptor.cache_dependency, cached.dependency),
            )

    def __repr__(self) -> str:
        return f"<{self.definition.name} id={self.id!r} version={self.version}>"
