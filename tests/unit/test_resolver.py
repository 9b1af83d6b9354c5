"""Unit tests for path resolution and the AttributeMapper."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock

import pytest

from aggregate_cache.mapping.builder import aggregate
from aggregate_cache.mapping.plan import AggregateDefinition, Transformer
from aggregate_cache.mapping.resolver import AttributeMapper, get_field, is_record, resolve, set_field


@dataclass
class Country:
    code: str | None = None


@dataclass
class Address:
    line1: str | None = None
    country: Country | None = None


class TrackedRecord:
    """Records every field write."""

    def __init__(self, **values: Any) -> None:
        object.__setattr__(self, "writes", [])
        for name, value in values.items():
            object.__setattr__(self, name, value)

    def __setattr__(self, name: str, value: Any) -> None:
        self.writes.append(name)
        object.__setattr__(self, name, value)


class FakeAggregate:
    def __init__(self, **attributes: Any) -> None:
        self.attributes = attributes

    def get_attribute(self, name: str) -> Any:
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = value


class TestResolve:
    def test_single_segment(self) -> None:
        address = Address("1 Main St")
        assert resolve(address, "line1") == (address, "line1")

    def test_nested(self) -> None:
        country = Country("NZ")
        assert resolve(Address(country=country), "country.code") == (country, "code")

    def test_null_intermediate(self) -> None:
        assert resolve(Address(), "country.code") is None

    def test_null_reference(self) -> None:
        assert resolve(None, "line1") is None

    def test_scalar_intermediate(self) -> None:
        assert resolve(Address("1 Main St"), "line1.length") is None

    def test_mapping_records(self) -> None:
        record = {"country": {"code": "NZ"}}
        target = resolve(record, "country.code")
        assert target == (record["country"], "code")
        assert get_field(*target) == "NZ"

    @pytest.mark.parametrize("value", ["text", 1, 1.5, True, [1], (1,), b"x"])
    def test_scalars_are_not_records(self, value: Any) -> None:
        assert is_record(value) is False

    def test_set_field(self) -> None:
        record: dict[str, Any] = {}
        set_field(record, "a", 1)
        address = Address()
        set_field(address, "line1", "x")
        assert record == {"a": 1}
        assert address.line1 == "x"


def _definition(**kwargs: Any) -> AggregateDefinition:
    return (
        aggregate("Customer")
        .model("Member")
        .model("Address", "mem_id")
        .field("id", "Member", "mem_id")
        .field("firstName", "Member", "fname")
        .field("countryCode", "Address", "country.code", default="??")
        .field("signupDate", "Member", "created", read_only=True)
        .field("isActive", "Member", "active", transformer=kwargs.get("active"))
        .build()
    )


YES_NO = Transformer(
    to_clean=lambda value, field, owner: value == "Y",
    to_dirty=lambda value, field, owner: "Y" if value else "N",
)


class TestPopulateAggregate:
    def test_copies_values(self) -> None:
        mapper = AttributeMapper(_definition(active=YES_NO))
        target = FakeAggregate()
        records = {
            "Member": {"mem_id": 1, "fname": "Ann", "created": "2020-01-01", "active": "Y"},
            "Address": Address(country=Country("NZ")),
        }
        mapper.populate_aggregate(target, records)
        assert target.attributes == {
            "id": 1,
            "firstName": "Ann",
            "countryCode": "NZ",
            "signupDate": "2020-01-01",
            "isActive": True,
        }

    def test_unresolved_path_is_skipped(self) -> None:
        mapper = AttributeMapper(_definition())
        target = FakeAggregate(countryCode="??")
        mapper.populate_aggregate(target, {"Member": {"mem_id": 1}, "Address": None})
        assert target.attributes["countryCode"] == "??"

    def test_null_value_gets_default(self) -> None:
        mapper = AttributeMapper(_definition())
        target = FakeAggregate()
        mapper.populate_aggregate(target, {"Member": {}, "Address": Address(country=Country())})
        assert target.attributes["countryCode"] == "??"

    def test_single_model(self) -> None:
        mapper = AttributeMapper(_definition())
        target = FakeAggregate()
        mapper.populate_aggregate(
            target,
            {"Member": {"fname": "Ann"}, "Address": Address(country=Country("NZ"))},
            model_key="Address",
        )
        assert target.attributes == {"countryCode": "NZ"}

    def test_single_callable_transformer(self) -> None:
        transform = MagicMock(return_value="clean")
        mapper = AttributeMapper(_definition(active=transform))
        target = FakeAggregate()
        record = {"active": "raw"}
        mapper.populate_aggregate(target, {"Member": record}, model_key="Member")
        assert target.attributes["isActive"] == "clean"
        transform.assert_called_once_with("raw", "active", record, False)


class TestPopulateChildRecords:
    def test_writes_changed_fields_only(self) -> None:
        mapper = AttributeMapper(_definition())
        member = TrackedRecord(mem_id=1, fname="Ann", created=None, active=None)
        target = FakeAggregate(id=1, firstName="Anna")
        mapper.populate_child_records(target, {"Member": member, "Address": None})
        assert member.fname == "Anna"
        assert member.writes == ["fname"]

    def test_read_only_is_skipped(self) -> None:
        mapper = AttributeMapper(_definition())
        member = {"mem_id": 1, "created": "2020-01-01"}
        mapper.populate_child_records(FakeAggregate(id=1, signupDate="1999-01-01"), {"Member": member})
        assert member["created"] == "2020-01-01"

    def test_null_intermediate_is_skipped(self) -> None:
        mapper = AttributeMapper(_definition())
        address = Address()
        mapper.populate_child_records(FakeAggregate(countryCode="NZ"), {"Member": {}, "Address": address})
        assert address.country is None

    def test_nested_write(self) -> None:
        mapper = AttributeMapper(_definition())
        address = Address(country=Country("NZ"))
        mapper.populate_child_records(FakeAggregate(countryCode="AU"), {"Member": {}, "Address": address})
        assert address.country.code == "AU"

    def test_default_applied_on_write(self) -> None:
        mapper = AttributeMapper(_definition())
        address = Address(country=Country("NZ"))
        mapper.populate_child_records(FakeAggregate(), {"Member": {}, "Address": address})
        assert address.country.code == "??"

    def test_to_dirty_transformer(self) -> None:
        mapper = AttributeMapper(_definition(active=YES_NO))
        member: dict[str, Any] = {"active": "Y"}
        mapper.populate_child_records(FakeAggregate(isActive=False), {"Member": member})
        assert member["active"] == "N"

    def test_single_callable_receives_aggregate(self) -> None:
        transform = MagicMock(return_value="dirty")
        mapper = AttributeMapper(_definition(active=transform))
        target = FakeAggregate(isActive=True)
        member: dict[str, Any] = {}
        mapper.populate_child_records(target, {"Member": member})
        assert member["active"] == "dirty"
        transform.assert_called_once_with(True, "isActive", target, True)

    def test_nested_record_is_never_overwritten(self) -> None:
        definition = aggregate("X").model("Member").field("address", "Member").build()
        nested = Address("1 Main St")
        member = {"address": nested}
        AttributeMapper(definition).populate_child_records(
            FakeAggregate(address="flat"), {"Member": member}
        )
        assert member["address"] is nested
