"""Row-to-record mapper for child record stores.

Builds child records from stored rows and turns them back into column
values. Supports dataclasses, Pydantic models, plain classes and dicts.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from aggregate_cache.core.exceptions import ColumnMismatchError
from aggregate_cache.mapping.resolver import is_record

T = TypeVar("T")


class ModelMapper(Generic[T]):
    """Maps stored rows to child records and records back to rows.

    Record kinds, in detection order:
    1. Pydantic BaseModel -> model_validate(row) / declared fields
    2. dataclass -> record_class(**row) / dataclass fields
    3. dict -> dict(row)
    4. Plain class -> record_class(**row) / public instance attributes

    Args:
        record_class: The class each row becomes.
        aliases: Optional column-name to field-name mapping.
    """

    def __init__(
        self,
        record_class: type[T],
        aliases: dict[str, str] | None = None,
    ) -> None:
        self._record_class = record_class
        self._fields = dict(aliases or {})
        self._columns = {name: column for column, name in self._fields.items()}
        self._is_pydantic = isinstance(record_class, type) and issubclass(record_class, BaseModel)
        self._is_dataclass = dataclasses.is_dataclass(record_class)

    @property
    def record_class(self) -> type[T]:
        return self._record_class

    def column(self, field: str) -> str:
        """Column name for a record field."""
        return self._columns.get(field, field)

    def map_one(self, row: dict[str, Any]) -> T:
        """Build one record from a row of column values.

        Raises:
            ColumnMismatchError: If the row does not fit the record class.
        """
        values = {self._fields.get(column, column): value for column, value in row.items()}
        name = self._record_class.__name__
        if self._is_pydantic:
            try:
                return self._record_class.model_validate(values)  # type: ignore[attr-defined, no-any-return]
            except ValidationError as e:
                raise ColumnMismatchError(name, [str(e)]) from e
        try:
            return self._record_class(**values)
        except TypeError as e:
            raise ColumnMismatchError(name, [str(e)]) from e

    def to_row(self, record: Any) -> dict[str, Any]:
        """Column values of a record, leaving out nested records."""
        if self._is_pydantic:
            values = {name: getattr(record, name) for name in type(record).model_fields}
        elif self._is_dataclass:
            values = {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}
        elif isinstance(record, dict):
            values = dict(record)
        else:
            values = {k: v for k, v in vars(record).items() if not k.startswith("_")}
        return {self.column(name): value for name, value in values.items() if not is_record(value)}
