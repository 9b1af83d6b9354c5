"""Aggregate definition data classes.

Frozen dataclasses representing compiled, validated aggregate declarations.
Built once per aggregate type by AggregateBuilder and consumed by the
mapper, the relation resolver and the session at execution time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from aggregate_cache.core.enums import RelationType

Finder = Callable[[Any, Any], Any]
TransformFn = Callable[[Any, str, Any], Any]
Validator = Callable[[Any], Any]


@dataclass(frozen=True)
class Transformer:
    """Two-way value transformer.

    Values inside the aggregate are "clean", values on child records are
    "dirty". Both functions receive ``(value, field_name, owner)``.
    """

    to_clean: TransformFn | None = None
    to_dirty: TransformFn | None = None


@dataclass(frozen=True)
class MappingEntry:
    """Maps one aggregate attribute to a dotted path on a child record."""

    name: str
    model_key: str
    path: str
    read_only: bool = False


@dataclass(frozen=True)
class ModelDependency:
    """A child record the aggregate is assembled from.

    Without ``field`` the record is looked up by its primary key; with
    ``field`` it is looked up by that foreign-key field.
    """

    model_key: str
    field: str | None = None
    required: bool = True


@dataclass(frozen=True)
class RelationDescriptor:
    """Declared relation to another aggregate type."""

    name: str
    relation_type: RelationType
    foreign_type: str
    attribute: str | None = None
    finder: Finder | None = None
    cache_duration: int | None = None
    cache_dependency: Any = None

    @property
    def uses_attribute(self) -> bool:
        return self.relation_type is RelationType.BELONGS_TO and self.attribute is not None

    @property
    def is_many(self) -> bool:
        return self.relation_type is RelationType.HAS_MANY


@dataclass(frozen=True)
class AggregateDefinition:
    """Compiled, validated aggregate type declaration."""

    name: str
    models: list[ModelDependency]
    mapping: list[MappingEntry]
    relations: dict[str, RelationDescriptor] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    transformers: dict[str, Any] = field(default_factory=dict)
    assemble: Callable[[Any], dict[str, Any]] | None = None
    cache_duration: int | None = None
    validator: Validator | None = None
    schema: type | None = None
    aggregate_class: type | None = None

    def attribute_names(self) -> list[str]:
        """Declared attribute names: ``id`` first, ``version`` last."""
        names = [entry.name for entry in self.mapping]
        if "id" not in names:
            names.insert(0, "id")
        names.append("version")
        return names

    def has_attribute(self, name: str) -> bool:
        return name in ("id", "version") or any(e.name == name for e in self.mapping)

    def entries_for(self, model_key: str) -> list[MappingEntry]:
        return [entry for entry in self.mapping if entry.model_key == model_key]

    def dependency(self, model_key: str) -> ModelDependency | None:
        for dep in self.models:
            if dep.model_key == model_key:
                return dep
        return None
