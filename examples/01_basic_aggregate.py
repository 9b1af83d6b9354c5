"""
Example 01: Basic Aggregate

This example demonstrates declaring an aggregate over two child tables,
loading it through the cache, saving a change and watching the version
and the cached snapshot move together.
"""

from aggregate_cache import CacheConfig, Engine, AggregateRegistry, Transformer, aggregate
from aggregate_cache.adapters.sqlite import SqliteChildStore
from aggregate_cache.core.snapshot import decode
from dataclasses import dataclass
from typing import Optional
import sqlite3


@dataclass
class Member:
    """Row of the members table"""
    mem_id: Optional[int] = None
    fname: Optional[str] = None
    active: str = "N"


@dataclass
class Address:
    """Row of the addresses table"""
    id: Optional[int] = None
    mem_id: Optional[int] = None
    line1: Optional[str] = None


def main():
    # Set up database
    conn = sqlite3.connect(":memory:")
    conn.executescript("""
        CREATE TABLE members (
            mem_id INTEGER PRIMARY KEY,
            fname TEXT NOT NULL,
            active TEXT NOT NULL DEFAULT 'N'
        );
        CREATE TABLE addresses (
            id INTEGER PRIMARY KEY,
            mem_id INTEGER UNIQUE,
            line1 TEXT
        );
        INSERT INTO members (mem_id, fname, active) VALUES (1, 'Test', 'Y');
        INSERT INTO addresses (mem_id, line1) VALUES (1, '123 Fake Street');
    """)

    store = (
        SqliteChildStore(conn)
        .register("Member", "members", Member, primary_key="mem_id")
        .register("Address", "addresses", Address)
    )

    # Declare the User aggregate
    user_definition = (
        aggregate("User")
        .model("Member")
        .model("Address", "mem_id")
        .field("id", "Member", "mem_id")
        .field("firstName", "Member", "fname")
        .field("addressLine1", "Address", "line1")
        .field(
            "isActive",
            "Member",
            "active",
            transformer=Transformer(
                to_clean=lambda value, field, owner: value == "Y",
                to_dirty=lambda value, field, owner: "Y" if value else "N",
            ),
        )
        .build()
    )

    # Configure engine
    engine = Engine.from_config(CacheConfig(backend="memory"), AggregateRegistry([user_definition]), store)

    print("=== Basic Aggregate ===\n")

    with engine.session() as session:
        user = session.load("User", 1)
        print(f"Loaded {user!r}: {user.firstName}, {user.addressLine1}, active={user.isActive}")

        user.firstName = "Updated"
        result = session.save(user)
        print(f"Saved: {result.status.value}, now {user!r}")

        row = conn.execute("SELECT fname FROM members WHERE mem_id = 1").fetchone()
        print(f"members.fname = {row['fname']}")
        key = engine.cache_key("User", 1)
        print(f"Cached under {key}: {decode(key, engine.cache.get(key)).attributes}")

    # A new unit of work is served from the cache
    with engine.session() as session:
        print(f"\nNew session sees {session.load('User', 1)!r}")

        new_user = session.create("User", firstName="Fresh", addressLine1="9 New Lane", isActive=True)
        session.save(new_user)
        print(f"Created {new_user!r}")

    store.close()


if __name__ == "__main__":
    main()
