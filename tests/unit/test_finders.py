"""Unit tests for FinderRegistry and dynamic finder parsing."""

from __future__ import annotations

import pytest

from row_mapper.core.enums import Aggregate
from row_mapper.core.exceptions import ConfigurationError, InvalidOption, UnknownFinder
from row_mapper.core.finders import (
    DynamicFinder,
    Finder,
    FinderRegistry,
    SourceMeta,
    parse_dynamic_finder,
    underscore,
)

META = SourceMeta(source="posts", key="id", title="title")


class TestBuiltins:
    def test_builtin_names(self) -> None:
        registry = FinderRegistry()
        assert registry.names == ["all", "count", "first", "list"]
        assert len(registry) == 4

    def test_all_adds_no_constraint(self) -> None:
        descriptor = FinderRegistry().resolve("all", {}, META)
        assert descriptor.limit == 0
        assert descriptor.is_unscoped
        assert descriptor.finder == "all"

    def test_first_forces_limit_one(self) -> None:
        descriptor = FinderRegistry().resolve("first", {"limit": 20}, META)
        assert descriptor.limit == 1

    def test_count_is_aggregate(self) -> None:
        descriptor = FinderRegistry().resolve(
            "count", {"conditions": {"a": 1}, "order": "id", "limit": 5, "page": 2}, META
        )
        assert descriptor.aggregate is Aggregate.COUNT
        assert descriptor.order == ()
        assert descriptor.limit == 0
        assert dict(descriptor.conditions) == {"a": 1}

    def test_list_selects_key_and_title(self) -> None:
        descriptor = FinderRegistry().resolve("list", {}, SourceMeta("users", "uid", "name"))
        assert descriptor.fields == ("uid", "name")

    def test_unknown_finder(self) -> None:
        with pytest.raises(UnknownFinder, match="recent"):
            FinderRegistry().resolve("recent", {}, META)

    def test_unknown_option_rejected_before_shaping(self) -> None:
        with pytest.raises(InvalidOption):
            FinderRegistry().resolve("first", {"with": "Comments"}, META)


class TestRegister:
    def test_register_defaults_mapping(self) -> None:
        registry = FinderRegistry({"published": {"conditions": {"published": 1}, "order": "id"}})
        descriptor = registry.resolve("published", {"conditions": {"author": "anna"}}, META)
        assert dict(descriptor.conditions) == {"published": 1, "author": "anna"}
        assert descriptor.finder == "published"

    def test_caller_conditions_override_defaults(self) -> None:
        registry = FinderRegistry({"published": {"conditions": {"published": 1}}})
        descriptor = registry.resolve("published", {"conditions": {"published": 0}}, META)
        assert descriptor.conditions["published"] == 0

    def test_register_callable(self) -> None:
        registry = FinderRegistry()
        registry.register("recent", lambda options, meta: {**options, "order": {"created": "DESC"}})
        descriptor = registry.resolve("recent", {"limit": 3}, META)
        assert descriptor.limit == 3
        assert descriptor.order[0][0] == "created"

    def test_later_registration_wins(self) -> None:
        registry = FinderRegistry()
        registry.register("recent", {"limit": 5})
        registry.register("recent", {"limit": 10})
        assert registry.resolve("recent", {}, META).limit == 10

    def test_override_builtin(self) -> None:
        first = Finder("ignored", query=lambda o, m: {**o, "limit": 1})
        registry = FinderRegistry({"first": first})
        assert registry.get("first").name == "first"
        assert registry.get("first").result is None

    def test_invalid_defaults(self) -> None:
        with pytest.raises(ConfigurationError):
            FinderRegistry({"bad": {"with": "Comments"}})

    def test_unsupported_definition(self) -> None:
        with pytest.raises(ConfigurationError):
            FinderRegistry({"bad": 42})

    def test_frozen_registry_rejects_register(self) -> None:
        registry = FinderRegistry()
        registry.freeze()
        assert registry.frozen
        with pytest.raises(ConfigurationError, match="frozen"):
            registry.register("recent", {})


class TestDynamicParsing:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("findAllByAuthor", DynamicFinder("all", ("author",))),
            ("findByTitle", DynamicFinder("first", ("title",))),
            ("findFirstByTitleAndAuthor", DynamicFinder("first", ("title", "author"))),
            ("findCountByAuthorName", DynamicFinder("count", ("author_name",))),
            ("findRecentPostsByAuthor", DynamicFinder("recent_posts", ("author",))),
            ("findAllByBrandName", DynamicFinder("all", ("brand_name",))),
            ("find_all_by_author", DynamicFinder("all", ("author",))),
            ("find_by_title_and_author", DynamicFinder("first", ("title", "author"))),
            ("find_list_by_author_name", DynamicFinder("list", ("author_name",))),
        ],
    )
    def test_parse(self, name: str, expected: DynamicFinder) -> None:
        assert parse_dynamic_finder(name) == expected

    @pytest.mark.parametrize("name", ["find", "findAll", "all", "findallbyauthor", "find_all"])
    def test_not_dynamic(self, name: str) -> None:
        assert parse_dynamic_finder(name) is None

    def test_underscore(self) -> None:
        assert underscore("AuthorName") == "author_name"
        assert underscore("HTTPStatus") == "http_status"
        assert underscore("Id") == "id"


class TestResolveDynamic:
    def test_equivalent_to_all_with_conditions(self) -> None:
        registry = FinderRegistry()
        dynamic = registry.resolve_dynamic("findAllByAuthor", ["michael"], {}, META)
        explicit = registry.resolve("all", {"conditions": {"author": "michael"}}, META)
        assert dynamic == explicit

    def test_explicit_conditions_win(self) -> None:
        descriptor = FinderRegistry().resolve_dynamic(
            "findAllByAuthor",
            ["michael"],
            {"conditions": {"author": "anna", "published": 1}},
            META,
        )
        assert dict(descriptor.conditions) == {"author": "anna", "published": 1}

    def test_unregistered_base(self) -> None:
        with pytest.raises(UnknownFinder, match="findRecentByAuthor"):
            FinderRegistry().resolve_dynamic("findRecentByAuthor", ["x"], {}, META)

    def test_custom_base(self) -> None:
        registry = FinderRegistry({"recent": {"limit": 5}})
        descriptor = registry.resolve_dynamic("findRecentByAuthor", ["x"], {}, META)
        assert descriptor.limit == 5
        assert dict(descriptor.conditions) == {"author": "x"}

    def test_value_count_mismatch(self) -> None:
        with pytest.raises(InvalidOption, match="expects 2"):
            FinderRegistry().resolve_dynamic("findAllByTitleAndAuthor", ["x"], {}, META)

    def test_not_a_dynamic_name(self) -> None:
        with pytest.raises(UnknownFinder):
            FinderRegistry().resolve_dynamic("allPosts", [], {}, META)
