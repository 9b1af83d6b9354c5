"""Aggregate registry - definitions indexed by aggregate type name.

Relations name their foreign aggregate type as a string; the registry is
how those names are resolved at runtime.
"""

from __future__ import annotations

from collections.abc import Iterable

from aggregate_cache.core.exceptions import AggregateTypeNotFoundError, DuplicateAggregateTypeError
from aggregate_cache.mapping.plan import AggregateDefinition
from aggregate_cache.mapping.resolver import AttributeMapper


class AggregateRegistry:
    """Holds every aggregate definition and its attribute mapper.

    Register once at startup, then read-only access for the lifetime of the
    application.

    Args:
        definitions: Definitions to register immediately.

    Raises:
        DuplicateAggregateTypeError: If two definitions share a name.
    """

    def __init__(self, definitions: Iterable[AggregateDefinition] = ()) -> None:
        self._definitions: dict[str, AggregateDefinition] = {}
        self._mappers: dict[str, AttributeMapper] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: AggregateDefinition) -> AggregateDefinition:
        if definition.name in self._definitions:
            raise DuplicateAggregateTypeError(definition.name)
        self._definitions[definition.name] = definition
        self._mappers[definition.name] = AttributeMapper(definition)
        return definition

    def get(self, type_name: str) -> AggregateDefinition:
        """Look up a definition by aggregate type name.

        Raises:
            AggregateTypeNotFoundError: If no definition has that name.
        """
        try:
            return self._definitions[type_name]
        except KeyError:
            raise AggregateTypeNotFoundError(type_name) from None

    def mapper(self, type_name: str) -> AttributeMapper:
        self.get(type_name)
        return self._mappers[type_name]

    def has(self, type_name: str) -> bool:
        return type_name in self._definitions

    def declaring(self, model_key: str) -> list[AggregateDefinition]:
        """Definitions assembled from the given child model."""
        return [
            definition
            for definition in self._definitions.values()
            if definition.dependency(model_key) is not None
        ]

    @property
    def type_names(self) -> list[str]:
        """List all registered type names, sorted alphabetically."""
        return sorted(self._definitions.keys())

    def __len__(self) -> int:
        return len(self._definitions)
