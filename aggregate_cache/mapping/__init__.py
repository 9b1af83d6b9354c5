"""Mapping layer - declare aggregates and move values to and from child records."""

from __future__ import annotations

from aggregate_cache.mapping.builder import AggregateBuilder, aggregate
from aggregate_cache.mapping.model import ModelMapper
from aggregate_cache.mapping.plan import (
    AggregateDefinition,
    MappingEntry,
    ModelDependency,
    RelationDescriptor,
    Transformer,
)
from aggregate_cache.mapping.resolver import AttributeMapper, resolve

__all__ = [
    "aggregate",
    "AggregateBuilder",
    "AggregateDefinition",
    "MappingEntry",
    "ModelDependency",
    "RelationDescriptor",
    "Transformer",
    "AttributeMapper",
    "ModelMapper",
    "resolve",
]
