"""Attribute mapper between aggregates and child records.

Reads (forward pass) and writes (reverse pass) aggregate attributes through
the definition's mapping table. Paths are dot-separated and may walk
through relations on the child record before reaching the terminal field.
A path that cannot be walked is *unresolved*: the attribute keeps its
default and nothing is written.
"""

from __future__ import annotations

import datetime
import decimal
import enum
import uuid
from collections.abc import Mapping, MutableMapping
from typing import Any

from aggregate_cache.mapping.plan import AggregateDefinition, MappingEntry, Transformer

_SCALARS = (
    str,
    bytes,
    bytearray,
    int,
    float,
    complex,
    bool,
    list,
    tuple,
    set,
    frozenset,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    decimal.Decimal,
    uuid.UUID,
    enum.Enum,
)


def is_record(value: Any) -> bool:
    """Whether ``value`` can hold fields (an object or a mapping, not a scalar)."""
    return value is not None and not isinstance(value, _SCALARS)


def get_field(record: Any, name: str) -> Any:
    """Read a field from an attribute-style or mapping-style record."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def set_field(record: Any, name: str, value: Any) -> None:
    """Write a field on an attribute-style or mapping-style record."""
    if isinstance(record, MutableMapping):
        record[name] = value
    else:
        setattr(record, name, value)


def resolve(reference: Any, path: str) -> tuple[Any, str] | None:
    """Walk ``path`` from ``reference``.

    Returns ``(terminal_object, field_name)``, or None when an intermediate
    segment (or the starting reference) is not a record.
    """
    *parts, last = path.split(".")
    for part in parts:
        if not is_record(reference):
            return None
        reference = get_field(reference, part)
    if not is_record(reference):
        return None
    return reference, last


def _apply(transformer: Any, value: Any, field_name: str, owner: Any, dirty: bool) -> Any:
    if transformer is None:
        return value
    if isinstance(transformer, Transformer):
        fn = transformer.to_dirty if dirty else transformer.to_clean
        return fn(value, field_name, owner) if fn is not None else value
    return transformer(value, field_name, owner, dirty)


class AttributeMapper:
    """Copies values between an aggregate and its child records.

    One mapper per aggregate definition; stateless between calls.
    """

    def __init__(self, definition: AggregateDefinition) -> None:
        self._definition = definition

    def _default(self, name: str, value: Any) -> Any:
        if value is None:
            return self._definition.defaults.get(name)
        return value

    def read(self, entry: MappingEntry, record: Any) -> tuple[bool, Any]:
        """Read one entry from its record, returning ``(resolved, clean_value)``."""
        resolved = resolve(record, entry.path)
        if resolved is None:
            return False, None
        owner, field_name = resolved
        value = get_field(owner, field_name)
        value = _apply(
            self._definition.transformers.get(entry.name), value, field_name, owner, False
        )
        return True, self._default(entry.name, value)

    def populate_aggregate(
        self,
        aggregate: Any,
        records: Mapping[str, Any],
        model_key: str | None = None,
    ) -> None:
        """Forward pass: copy child record values onto the aggregate.

        When ``model_key`` is given only entries for that record are copied.
        """
        for entry in self._definition.mapping:
            if model_key is not None and entry.model_key != model_key:
                continue
            ok, value = self.read(entry, records.get(entry.model_key))
            if ok:
                aggregate.set_attribute(entry.name, value)

    def populate_child_records(self, aggregate: Any, records: Mapping[str, Any]) -> None:
        """Reverse pass: copy aggregate values onto child records.

        Read-only entries are skipped, and a field is only written when the
        value actually differs, so unchanged records stay clean.
        """
        for entry in self._definition.mapping:
            if entry.read_only:
                continue
            resolved = resolve(records.get(entry.model_key), entry.path)
            if resolved is None:
                continue
            owner, field_name = resolved
            value = _apply(
                self._definition.transformers.get(entry.name),
                aggregate.get_attribute(entry.name),
                entry.name,
                aggregate,
                True,
            )
            value = self._default(entry.name, value)
            current = get_field(owner, field_name)
            # Never replace a nested record with a scalar
            if is_record(current):
                continue
            if value != current:
                set_field(owner, field_name, value)
