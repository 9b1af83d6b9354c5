"""Shared test fixtures.

The fixtures model a small system: a ``User`` aggregate assembled from a
``Member`` record (primary key ``mem_id``) and an optional ``Address``
record (foreign key ``mem_id``), and a ``Post`` aggregate that belongs to
its author.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock

import pytest

from aggregate_cache.adapters.memory import MemoryCacheStore, MemoryChildStore
from aggregate_cache.core.engine import Engine, Session
from aggregate_cache.core.registry import AggregateRegistry
from aggregate_cache.mapping.builder import aggregate
from aggregate_cache.mapping.plan import AggregateDefinition, Transformer


@dataclass
class Profile:
    bio: str | None = None


@dataclass
class Member:
    mem_id: int | None = None
    fname: str | None = None
    active: str = "N"
    profile: Profile | None = None


@dataclass
class Address:
    id: int | None = None
    mem_id: int | None = None
    line1: str | None = None


@dataclass
class PostRow:
    id: int | None = None
    author_id: int | None = None
    title: str | None = None


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


YES_NO = Transformer(
    to_clean=lambda value, field, owner: value == "Y",
    to_dirty=lambda value, field, owner: "Y" if value else "N",
)


def build_user_definition(posts_finder: Any) -> AggregateDefinition:
    return (
        aggregate("User")
        .model("Member")
        .model("Address", "mem_id")
        .field("id", "Member", "mem_id")
        .field("firstName", "Member", "fname")
        .field("addressLine1", "Address", "line1")
        .field("bio", "Member", "profile.bio", default="(none)")
        .field("isActive", "Member", "active", transformer=YES_NO)
        .has_many("posts", "Post", finder=posts_finder, cache_duration=60)
        .build()
    )


def build_post_definition() -> AggregateDefinition:
    return (
        aggregate("Post")
        .model("PostRow")
        .field("id", "PostRow", "id")
        .field("title", "PostRow", "title")
        .field("authorId", "PostRow", "author_id")
        .belongs_to("author", "User", attribute="authorId")
        .build()
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryChildStore:
    child_store = MemoryChildStore()
    child_store.register("Member", Member, primary_key="mem_id")
    child_store.register("Address", Address)
    child_store.register("PostRow", PostRow)
    return child_store


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCacheStore:
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def posts_finder(store: MemoryChildStore) -> MagicMock:
    """Finder returning the ids of every post written by the owner."""

    def _find(owner_id: Any, owner: Any) -> list[int]:
        return [row.id for row in store.records("PostRow") if row.author_id == owner_id]

    return MagicMock(side_effect=_find)


@pytest.fixture
def registry(posts_finder: MagicMock) -> AggregateRegistry:
    return AggregateRegistry([build_user_definition(posts_finder), build_post_definition()])


@pytest.fixture
def engine(
    registry: AggregateRegistry,
    store: MemoryChildStore,
    cache: MemoryCacheStore,
    clock: FakeClock,
) -> Engine:
    return Engine(registry, store, cache, clock=clock)


@pytest.fixture
def session(engine: Engine) -> Session:
    return engine.session()


@pytest.fixture
def seeded(store: MemoryChildStore) -> MemoryChildStore:
    """Member 1 with an address and two posts; member 2 without an address."""
    store.add("Member", Member(mem_id=1, fname="Test"))
    store.add("Address", Address(mem_id=1, line1="123 Fake Street"))
    store.add("Member", Member(mem_id=2, fname="Other", active="Y", profile=Profile("Hi")))
    store.add("PostRow", PostRow(author_id=1, title="First"))
    store.add("PostRow", PostRow(author_id=1, title="Second"))
    return store
