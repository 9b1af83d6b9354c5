"""Integration test for the SQLite child store full workflow.

Covers: aggregate loading from tables, write-through saves, creation of
new aggregates with generated keys, rejected writes and SQL-backed
relation finders against a real SQLite in-memory database.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from dataclasses import dataclass

import pytest

from aggregate_cache.adapters.memory import MemoryCacheStore
from aggregate_cache.adapters.sqlite import SqliteChildStore
from aggregate_cache.core.engine import Engine
from aggregate_cache.core.enums import SaveStatus
from aggregate_cache.core.exceptions import StoreError
from aggregate_cache.core.registry import AggregateRegistry
from aggregate_cache.mapping.builder import aggregate

# --- Test records ---


@dataclass
class MemberRow:
    mem_id: int | None = None
    fname: str | None = None
    active: str = "N"


@dataclass
class AddressRow:
    id: int | None = None
    mem_id: int | None = None
    line1: str | None = None


@dataclass
class NoteRow:
    id: int | None = None
    mem_id: int | None = None
    body: str | None = None


SCHEMA = """
CREATE TABLE members (
    mem_id INTEGER PRIMARY KEY,
    first_name TEXT NOT NULL,
    active TEXT NOT NULL DEFAULT 'N'
);
CREATE TABLE addresses (
    id INTEGER PRIMARY KEY,
    mem_id INTEGER UNIQUE,
    line1 TEXT NOT NULL
);
CREATE TABLE notes (
    id INTEGER PRIMARY KEY,
    mem_id INTEGER NOT NULL,
    body TEXT
);
INSERT INTO members (mem_id, first_name, active) VALUES (1, 'Test', 'Y');
INSERT INTO addresses (mem_id, line1) VALUES (1, '123 Fake Street');
INSERT INTO notes (mem_id, body) VALUES (1, 'first'), (1, 'second'), (2, 'other');
"""


@pytest.fixture
def child_store() -> Iterator[SqliteChildStore]:
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA)
    store = (
        SqliteChildStore(conn)
        .register("Member", "members", MemberRow, primary_key="mem_id", aliases={"first_name": "fname"})
        .register("Address", "addresses", AddressRow)
        .register("Note", "notes", NoteRow)
    )
    yield store
    store.close()


@pytest.fixture
def sqlite_engine(child_store: SqliteChildStore) -> Engine:
    conn = child_store.connection

    def find_notes(owner_id, owner):
        rows = conn.execute("SELECT id FROM notes WHERE mem_id = ? ORDER BY id", (owner_id,))
        return [row["id"] for row in rows]

    user = (
        aggregate("User")
        .model("Member")
        .model("Address", "mem_id")
        .field("id", "Member", "mem_id")
        .field("firstName", "Member", "fname")
        .field("addressLine1", "Address", "line1")
        .field("isActive", "Member", "active", default="N")
        .has_many("notes", "Note", find_notes, cache_duration=300)
    )
    note = (
        aggregate("Note")
        .model("Note")
        .field("id", "Note")
        .field("body", "Note")
        .field("memberId", "Note", "mem_id")
        .belongs_to("member", "User", attribute="memberId")
    )
    registry = AggregateRegistry([user.build(), note.build()])
    return Engine(registry, child_store, MemoryCacheStore())


def _row(store: SqliteChildStore, sql: str, *params: object) -> sqlite3.Row:
    return store.connection.execute(sql, params).fetchone()


class TestSqliteWorkflow:
    def test_load(self, sqlite_engine: Engine) -> None:
        user = sqlite_engine.session().load("User", 1)
        assert user.firstName == "Test"
        assert user.addressLine1 == "123 Fake Street"
        assert user.isActive == "Y"

    def test_save_writes_rows(self, sqlite_engine: Engine, child_store: SqliteChildStore) -> None:
        session = sqlite_engine.session()
        user = session.load("User", 1)
        user.firstName = "Updated"
        user.addressLine1 = "1 New Road"

        assert session.save(user)

        assert _row(child_store, "SELECT first_name FROM members WHERE mem_id = 1")[0] == "Updated"
        assert _row(child_store, "SELECT line1 FROM addresses WHERE mem_id = 1")[0] == "1 New Road"
        assert user.version == 2

    def test_create_uses_generated_keys(
        self, sqlite_engine: Engine, child_store: SqliteChildStore
    ) -> None:
        session = sqlite_engine.session()
        user = session.create("User", firstName="Fresh", addressLine1="7 Key Lane")

        assert session.save(user)

        assert user.id == 2
        address = _row(child_store, "SELECT mem_id, line1 FROM addresses WHERE line1 = ?", "7 Key Lane")
        assert tuple(address) == (2, "7 Key Lane")
        reloaded = sqlite_engine.session().load("User", 2, force_refresh=True)
        assert reloaded.firstName == "Fresh"
        assert reloaded.version == 2

    def test_rejected_write(self, sqlite_engine: Engine, child_store: SqliteChildStore) -> None:
        session = sqlite_engine.session()
        user = session.load("User", 1)
        user.addressLine1 = None

        result = session.save(user)

        assert result.status is SaveStatus.PERSIST_FAILED
        assert user.version == 1
        assert _row(child_store, "SELECT line1 FROM addresses WHERE mem_id = 1")[0] == "123 Fake Street"

    def test_sql_relation_finder(self, sqlite_engine: Engine) -> None:
        session = sqlite_engine.session()
        user = session.load("User", 1)
        assert [note.body for note in user.notes] == ["first", "second"]
        assert user.notes.first().member is user

    def test_missing_member(self, sqlite_engine: Engine) -> None:
        assert sqlite_engine.session().load("User", 42) is None


class TestSqliteChildStore:
    def test_invalid_identifier(self, child_store: SqliteChildStore) -> None:
        with pytest.raises(StoreError, match="Invalid SQL identifier"):
            child_store.register("Bad", "members; DROP TABLE members", MemberRow)

    def test_unknown_column(self, child_store: SqliteChildStore) -> None:
        with pytest.raises(StoreError):
            child_store.find_by_field("Member", "nickname", "x")

    def test_persist_with_explicit_key_inserts(self, child_store: SqliteChildStore) -> None:
        assert child_store.persist("Member", MemberRow(mem_id=10, fname="Ten"))
        found = child_store.find_by_field("Member", "mem_id", 10)
        assert found == MemberRow(mem_id=10, fname="Ten", active="N")
