"""Unit tests for Aggregate instances and snapshots."""

from __future__ import annotations

import pytest

from aggregate_cache.core.exceptions import MappingError, UnknownAttributeError
from aggregate_cache.core.snapshot import AggregateSnapshot, RelationCacheSnapshot


class TestAttributeAccess:
    def test_new_aggregate_defaults(self, session) -> None:
        user = session.create("User")
        assert user.is_new is True
        assert user.version == 1
        assert user.id is None
        assert user.bio == "(none)"
        assert user.attribute_names() == [
            "id",
            "firstName",
            "addressLine1",
            "bio",
            "isActive",
            "version",
        ]

    def test_attribute_style_and_explicit_access(self, session) -> None:
        user = session.create("User", firstName="Ann")
        user.addressLine1 = "2 Side St"
        assert user.firstName == "Ann"
        assert user.get_attribute("addressLine1") == "2 Side St"
        assert user.get_attributes(["firstName"]) == {"firstName": "Ann"}
        assert user.has_attribute("bio")
        assert not user.has_attribute("posts")

    def test_unknown_attribute(self, session) -> None:
        user = session.create("User")
        with pytest.raises(UnknownAttributeError, match="nickname"):
            user.nickname
        with pytest.raises(MappingError):
            user.nickname = "x"
        with pytest.raises(UnknownAttributeError):
            session.create("User", nickname="x")

    def test_unknown_attribute_is_attribute_error(self, session) -> None:
        user = session.create("User")
        assert getattr(user, "nickname", "missing") == "missing"
        assert not hasattr(user, "nickname")

    def test_unknown_relation(self, session) -> None:
        with pytest.raises(UnknownAttributeError):
            session.create("User").relation("friends")

    def test_repr(self, session, seeded) -> None:
        assert repr(session.load("User", 1)) == "<User id=1 version=1>"


class TestSnapshots:
    def test_to_snapshot(self, session, seeded) -> None:
        user = session.load("User", 2)
        snapshot = user.to_snapshot()
        assert snapshot.type == "User"
        assert snapshot.id == 2
        assert snapshot.version == 1
        assert snapshot.attributes == {
            "firstName": "Other",
            "addressLine1": None,
            "bio": "Hi",
            "isActive": True,
        }
        assert snapshot.relations == {}

    def test_restore_ignores_undeclared_names(self, session) -> None:
        user = session.create("User")
        user.restore_snapshot(
            AggregateSnapshot(
                type="User",
                id=5,
                version=4,
                attributes={"firstName": "Cached", "removedField": 1},
                relations={
                    "posts": RelationCacheSnapshot(ids=[3], captured_at=1.0),
                    "gone": RelationCacheSnapshot(ids=[], captured_at=1.0),
                },
            )
        )
        assert user.id == 5
        assert user.version == 4
        assert user.firstName == "Cached"
        assert not user.has_attribute("removedField")
        assert user.relation("posts").cache_entry.ids == [3]
        assert set(user.relations) == {"posts"}
