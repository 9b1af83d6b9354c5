"""SQLite child model store (stdlib sqlite3)."""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import Any

from aggregate_cache.core.exceptions import StoreError
from aggregate_cache.mapping.model import ModelMapper
from aggregate_cache.mapping.resolver import set_field

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise StoreError(f"Invalid SQL identifier: {name!r}")
    return name


@dataclass(frozen=True)
class _Table:
    name: str
    primary_key: str
    mapper: ModelMapper[Any]


class SqliteChildStore:
    """Child model store keeping one table per model.

    Args:
        database: A path, ``":memory:"``, or an open sqlite3 connection.
    """

    def __init__(self, database: str | sqlite3.Connection) -> None:
        if isinstance(database, sqlite3.Connection):
            self._conn = database
        else:
            self._conn = sqlite3.connect(database)
        self._conn.row_factory = sqlite3.Row
        self._tables: dict[str, _Table] = {}

    def register(
        self,
        model_key: str,
        table: str,
        record_class: type,
        primary_key: str = "id",
        aliases: dict[str, str] | None = None,
    ) -> SqliteChildStore:
        """Map a model key to a table and the record class its rows become."""
        mapper: ModelMapper[Any] = ModelMapper(record_class, aliases)
        _check_identifier(table)
        _check_identifier(mapper.column(primary_key))
        self._tables[model_key] = _Table(table, primary_key, mapper)
        return self

    def _table(self, model_key: str) -> _Table:
        try:
            return self._tables[model_key]
        except KeyError:
            raise StoreError(f"Unknown model: '{model_key}'") from None

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def primary_key(self, model_key: str) -> str:
        return self._table(model_key).primary_key

    def create(self, model_key: str, **values: Any) -> Any:
        return self._table(model_key).mapper.record_class(**values)

    def find_by_field(self, model_key: str, field: str, value: Any) -> Any | None:
        table = self._table(model_key)
        column = _check_identifier(table.mapper.column(field))
        sql = f"SELECT * FROM {table.name} WHERE {column} = :value LIMIT 1"
        try:
            row = self._conn.execute(sql, {"value": value}).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Lookup on '{table.name}.{column}' failed: {e}") from e
        if row is None:
            return None
        return table.mapper.map_one(dict(row))

    def persist(self, model_key: str, record: Any) -> bool:
        table = self._table(model_key)
        row = table.mapper.to_row(record)
        pk_column = table.mapper.column(table.primary_key)
        for column in row:
            _check_identifier(column)

        try:
            if row.get(pk_column) is None:
                row.pop(pk_column, None)
                cursor = self._insert(table.name, row)
                set_field(record, table.primary_key, cursor.lastrowid)
            else:
                others = [c for c in row if c != pk_column]
                where = f"WHERE {pk_column} = :{pk_column}"
                if others:
                    assignments = ", ".join(f"{c} = :{c}" for c in others)
                    sql = f"UPDATE {table.name} SET {assignments} {where}"
                    exists = self._conn.execute(sql, row).rowcount > 0
                else:
                    sql = f"SELECT 1 FROM {table.name} {where}"
                    exists = self._conn.execute(sql, row).fetchone() is not None
                if not exists:
                    self._insert(table.name, row)
            self._conn.commit()
        except sqlite3.IntegrityError as e:
            self._conn.rollback()
            logger.warning("Rejected write to '%s': %s", table.name, e)
            return False
        except sqlite3.Error as e:
            self._conn.rollback()
            raise StoreError(f"Write to '{table.name}' failed: {e}") from e
        return True

    def _insert(self, table: str, row: dict[str, Any]) -> sqlite3.Cursor:
        if not row:
            return self._conn.execute(f"INSERT INTO {table} DEFAULT VALUES")
        columns = ", ".join(row)
        placeholders = ", ".join(f":{c}" for c in row)
        return self._conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", row)

    def close(self) -> None:
        self._conn.close()
