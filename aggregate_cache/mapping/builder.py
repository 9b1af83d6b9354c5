"""Aggregate definition DSL builder.

Provides a fluent builder for declaring aggregate types: the child records
they are assembled from, the attribute mapping, relations and cache policy.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
from typing import Any, Callable

from aggregate_cache.core.enums import RelationType
from aggregate_cache.core.exceptions import DeclarationError
from aggregate_cache.mapping.plan import (
    AggregateDefinition,
    Finder,
    MappingEntry,
    ModelDependency,
    RelationDescriptor,
    Transformer,
    Validator,
)

logger = logging.getLogger(__name__)

_RESERVED = frozenset({"version"})


def _get_field_names(cls: type) -> list[str]:
    """Extract field names from a record class (dataclass, Pydantic, or plain)."""
    # Pydantic model
    if hasattr(cls, "model_fields"):
        return list(cls.model_fields.keys())

    # Dataclass
    if dataclasses.is_dataclass(cls):
        return [f.name for f in dataclasses.fields(cls)]

    # Plain class - use __init__ parameters
    try:
        sig = inspect.signature(cls.__init__)  # type: ignore[misc]
        return [
            name
            for name, param in sig.parameters.items()
            if name != "self" and param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
        ]
    except (ValueError, TypeError):
        return []


def aggregate(name: str) -> AggregateBuilder:
    """Entry point for the aggregate definition DSL.

    Args:
        name: The aggregate type name. Part of every cache key, so it must
              stay stable across deployments.

    Returns:
        A builder for chaining declarations.
    """
    return AggregateBuilder(name)


class AggregateBuilder:
    """Fluent builder for aggregate definitions."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._models: list[tuple[str, str | None, bool | None]] = []  # key, field, required
        self._fields: list[MappingEntry] = []
        self._defaults: dict[str, Any] = {}
        self._transformers: dict[str, Any] = {}
        self._relations: list[RelationDescriptor] = []
        self._assemble: Callable[[Any], dict[str, Any]] | None = None
        self._cache_duration: int | None = None
        self._validator: Validator | None = None
        self._schema: type | None = None
        self._aggregate_class: type | None = None

    def model(
        self,
        model_key: str,
        field: str | None = None,
        *,
        required: bool | None = None,
    ) -> AggregateBuilder:
        """Declare a child record.

        Records without ``field`` share the aggregate's id as primary key and
        are required unless stated otherwise. Records with ``field`` are found
        by that foreign-key field and are optional unless stated otherwise.
        """
        self._models.append((model_key, field, required))
        return self

    def field(
        self,
        name: str,
        model_key: str,
        path: str | None = None,
        *,
        read_only: bool = False,
        default: Any = None,
        transformer: Any = None,
    ) -> AggregateBuilder:
        """Map an aggregate attribute to a (dotted) path on a child record."""
        self._fields.append(MappingEntry(name, model_key, path or name, read_only))
        if default is not None:
            self._defaults[name] = default
        if transformer is not None:
            self._transformers[name] = transformer
        return self

    def auto_fields(
        self,
        model_key: str,
        record_class: type,
        exclude: tuple[str, ...] = (),
    ) -> AggregateBuilder:
        """Map every field of a record class to a same-named attribute."""
        declared = {entry.name for entry in self._fields}
        for name in _get_field_names(record_class):
            if name in exclude or name in declared or name in _RESERVED:
                continue
            self._fields.append(MappingEntry(name, model_key, name))
        return self

    def default(self, name: str, value: Any) -> AggregateBuilder:
        self._defaults[name] = value
        return self

    def transformer(
        self,
        name: str,
        to_clean: Any = None,
        to_dirty: Any = None,
    ) -> AggregateBuilder:
        """Attach a transformer to an attribute.

        Pass ``to_clean``/``to_dirty`` for a two-way pair, or a single
        callable ``fn(value, field_name, owner, is_dirty)`` as ``to_clean``
        to handle both directions.
        """
        if to_dirty is None and callable(to_clean) and not isinstance(to_clean, Transformer):
            self._transformers[name] = to_clean
        elif isinstance(to_clean, Transformer):
            self._transformers[name] = to_clean
        else:
            self._transformers[name] = Transformer(to_clean, to_dirty)
        return self

    def belongs_to(
        self,
        name: str,
        foreign_type: str,
        *,
        attribute: str | None = None,
        finder: Finder | None = None,
        cache_duration: int | None = None,
        cache_dependency: Any = None,
    ) -> AggregateBuilder:
        """Declare a BELONGS_TO relation.

        With ``attribute`` the foreign id is read straight from that local
        attribute; ``finder`` and caching options are then ignored.
        """
        self._relations.append(
            RelationDescriptor(
                name,
                RelationType.BELONGS_TO,
                foreign_type,
                attribute=attribute,
                finder=finder,
                cache_duration=cache_duration,
                cache_dependency=cache_dependency,
            )
        )
        return self

    def has_one(
        self,
        name: str,
        foreign_type: str,
        finder: Finder,
        *,
        cache_duration: int | None = None,
        cache_dependency: Any = None,
    ) -> AggregateBuilder:
        """Declare a HAS_ONE relation resolved by ``finder(owner_id, owner)``."""
        self._relations.append(
            RelationDescriptor(
                name,
                RelationType.HAS_ONE,
                foreign_type,
                finder=finder,
                cache_duration=cache_duration,
                cache_dependency=cache_dependency,
            )
        )
        return self

    def has_many(
        self,
        name: str,
        foreign_type: str,
        finder: Finder,
        *,
        cache_duration: int | None = None,
        cache_dependency: Any = None,
    ) -> AggregateBuilder:
        """Declare a HAS_MANY relation; ``finder`` returns an ordered id list."""
        self._relations.append(
            RelationDescriptor(
                name,
                RelationType.HAS_MANY,
                foreign_type,
                finder=finder,
                cache_duration=cache_duration,
                cache_dependency=cache_dependency,
            )
        )
        return self

    def assemble(self, factory: Callable[[Any], dict[str, Any]]) -> AggregateBuilder:
        """Set the factory for fresh child records, ``factory(store) -> {key: record}``."""
        self._assemble = factory
        return self

    def cache_duration(self, seconds: int) -> AggregateBuilder:
        """Cache TTL for the aggregate snapshot, 0 meaning forever."""
        self._cache_duration = seconds
        return self

    def validator(self, fn: Validator) -> AggregateBuilder:
        """Set a validation hook returning an iterable of error messages."""
        self._validator = fn
        return self

    def schema(self, model: type) -> AggregateBuilder:
        """Validate attributes against a Pydantic model before saving."""
        self._schema = model
        return self

    def aggregate_class(self, cls: type) -> AggregateBuilder:
        """Instantiate this Aggregate subclass instead of the base class."""
        self._aggregate_class = cls
        return self

    def build(self) -> AggregateDefinition:
        """Compile and validate the declarations into an AggregateDefinition."""
        if not self._name:
            raise DeclarationError("Aggregate type must have a name")
        if not self._models:
            raise DeclarationError(
                f"Aggregate '{self._name}' must declare at least one model via .model()"
            )

        models: list[ModelDependency] = []
        for model_key, field_name, required in self._models:
            if any(dep.model_key == model_key for dep in models):
                raise DeclarationError(
                    f"Duplicate model '{model_key}' in aggregate '{self._name}'"
                )
            if required is None:
                required = field_name is None
            models.append(ModelDependency(model_key, field_name, required))

        # Validate attribute names
        seen: set[str] = set()
        for entry in self._fields:
            if entry.name in _RESERVED:
                raise DeclarationError(
                    f"'{entry.name}' is managed by the aggregate and cannot be mapped"
                )
            if entry.name in seen:
                raise DeclarationError(
                    f"Duplicate attribute '{entry.name}' in aggregate '{self._name}'"
                )
            if any(not part for part in entry.path.split(".")):
                raise DeclarationError(
                    f"Invalid path '{entry.path}' for attribute '{entry.name}'"
                )
            seen.add(entry.name)

            # Misconfigured entries never resolve; they are not fatal
            if not any(dep.model_key == entry.model_key for dep in models):
                logger.warning(
                    "Attribute '%s' of aggregate '%s' maps to undeclared model '%s'",
                    entry.name,
                    self._name,
                    entry.model_key,
                )

        attribute_names = seen | {"id", "version"}
        for name in list(self._defaults) + list(self._transformers):
            if name not in attribute_names:
                raise DeclarationError(
                    f"Default or transformer for unknown attribute '{name}' "
                    f"in aggregate '{self._name}'"
                )

        if self._cache_duration is not None and self._cache_duration < 0:
            raise DeclarationError("cache_duration must be >= 0")

        relations: dict[str, RelationDescriptor] = {}
        for rel in self._relations:
            if rel.name in relations or rel.name in attribute_names:
                raise DeclarationError(
                    f"Relation '{rel.name}' clashes with another attribute or relation"
                )
            if rel.cache_duration is not None and rel.cache_duration < 0:
                raise DeclarationError(f"Relation '{rel.name}': cache_duration must be >= 0")
            if rel.relation_type is RelationType.BELONGS_TO:
                if rel.attribute is None and rel.finder is None:
                    raise DeclarationError(
                        f"BELONGS_TO relation '{rel.name}' needs an attribute or a finder"
                    )
                if rel.attribute is not None and rel.attribute not in attribute_names:
                    raise DeclarationError(
                        f"BELONGS_TO relation '{rel.name}' refers to unknown "
                        f"attribute '{rel.attribute}'"
                    )
            elif rel.finder is None:
                raise DeclarationError(f"Relation '{rel.name}' needs a finder")
            relations[rel.name] = rel

        return AggregateDefinition(
            name=self._name,
            models=models,
            mapping=list(self._fields),
            relations=relations,
            defaults=dict(self._defaults),
            transformers=dict(self._transformers),
            assemble=self._assemble,
            cache_duration=self._cache_duration,
            validator=self._validator,
            schema=self._schema,
            aggregate_class=self._aggregate_class,
        )
