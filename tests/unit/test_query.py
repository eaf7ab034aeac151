"""Unit tests for QueryDescriptor."""

from __future__ import annotations

import dataclasses

import pytest

from row_mapper.core.enums import SortDirection
from row_mapper.core.exceptions import InvalidOption
from row_mapper.core.query import QueryDescriptor, merge_conditions


class TestBuild:
    def test_defaults(self) -> None:
        descriptor = QueryDescriptor.build(source="posts")
        assert descriptor.source == "posts"
        assert dict(descriptor.conditions) == {}
        assert descriptor.fields == ()
        assert descriptor.order == ()
        assert descriptor.limit == 0
        assert descriptor.page is None
        assert descriptor.offset == 0
        assert descriptor.is_unscoped

    def test_accepts_all_recognized_keys(self) -> None:
        descriptor = QueryDescriptor.build(
            {
                "conditions": {"author": "michael"},
                "fields": ["id", "title"],
                "order": {"created": "DESC"},
                "limit": 10,
                "page": 3,
            },
            source="posts",
        )
        assert dict(descriptor.conditions) == {"author": "michael"}
        assert descriptor.fields == ("id", "title")
        assert descriptor.order == (("created", SortDirection.DESC),)
        assert descriptor.offset == 20

    @pytest.mark.parametrize("key", ["with", "offset", "group", "Conditions"])
    def test_unknown_key_rejected(self, key: str) -> None:
        with pytest.raises(InvalidOption, match="unrecognized"):
            QueryDescriptor.build({key: 1}, source="posts")

    def test_page_without_limit_rejected(self) -> None:
        with pytest.raises(InvalidOption, match="positive 'limit'"):
            QueryDescriptor.build({"page": 2}, source="posts")

    def test_page_with_zero_limit_rejected(self) -> None:
        with pytest.raises(InvalidOption):
            QueryDescriptor.build({"page": 1, "limit": 0}, source="posts")

    def test_page_must_be_positive(self) -> None:
        with pytest.raises(InvalidOption):
            QueryDescriptor.build({"page": 0, "limit": 5}, source="posts")

    def test_negative_limit_rejected(self) -> None:
        with pytest.raises(InvalidOption):
            QueryDescriptor.build({"limit": -1}, source="posts")

    @pytest.mark.parametrize("value", ["10", 2.5, True])
    def test_non_integer_limit_rejected(self, value: object) -> None:
        with pytest.raises(InvalidOption):
            QueryDescriptor.build({"limit": value}, source="posts")

    def test_direct_construction_checks_page(self) -> None:
        with pytest.raises(InvalidOption):
            QueryDescriptor(source="posts", page=1)


class TestNormalisation:
    def test_fields_from_string(self) -> None:
        descriptor = QueryDescriptor.build({"fields": "id, title"}, source="posts")
        assert descriptor.fields == ("id", "title")

    def test_order_from_string(self) -> None:
        descriptor = QueryDescriptor.build({"order": "created DESC, title"}, source="posts")
        assert descriptor.order == (
            ("created", SortDirection.DESC),
            ("title", SortDirection.ASC),
        )

    def test_order_from_pairs(self) -> None:
        descriptor = QueryDescriptor.build({"order": [("title", "asc"), "id desc"]}, source="posts")
        assert descriptor.order == (("title", SortDirection.ASC), ("id", SortDirection.DESC))

    def test_invalid_direction(self) -> None:
        with pytest.raises(InvalidOption, match="sort direction"):
            QueryDescriptor.build({"order": {"created": "sideways"}}, source="posts")

    def test_sequence_condition_becomes_tuple(self) -> None:
        descriptor = QueryDescriptor.build({"conditions": {"id": [1, 2]}}, source="posts")
        assert descriptor.conditions["id"] == (1, 2)

    def test_operator_condition(self) -> None:
        descriptor = QueryDescriptor.build(
            {"conditions": {"created": {">=": 2, "NOT  IN": [5]}}}, source="posts"
        )
        assert dict(descriptor.conditions["created"]) == {">=": 2, "not in": (5,)}

    def test_unknown_operator(self) -> None:
        with pytest.raises(InvalidOption, match="unsupported operator"):
            QueryDescriptor.build({"conditions": {"created": {"~": 2}}}, source="posts")

    def test_conditions_must_be_mapping(self) -> None:
        with pytest.raises(InvalidOption):
            QueryDescriptor.build({"conditions": ["author"]}, source="posts")


class TestImmutability:
    def test_frozen(self) -> None:
        descriptor = QueryDescriptor.build({"limit": 1}, source="posts")
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.limit = 5  # type: ignore[misc]

    def test_conditions_read_only(self) -> None:
        descriptor = QueryDescriptor.build({"conditions": {"a": 1}}, source="posts")
        with pytest.raises(TypeError):
            descriptor.conditions["a"] = 2  # type: ignore[index]

    def test_caller_mapping_not_shared(self) -> None:
        conditions = {"a": 1}
        descriptor = QueryDescriptor.build({"conditions": conditions}, source="posts")
        conditions["a"] = 2
        assert descriptor.conditions["a"] == 1


def test_merge_conditions_explicit_wins() -> None:
    assert merge_conditions({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}
