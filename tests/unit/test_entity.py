"""Unit tests for Entity and Collection."""

from __future__ import annotations

import json
from dataclasses import dataclass

import pytest

from row_mapper.core.exceptions import EntityStateError, InvalidOption
from row_mapper.mapping.collection import Collection
from row_mapper.mapping.entity import Entity


@dataclass
class Post:
    id: int
    title: str


class TestFieldAccess:
    def test_item_and_attribute_access(self) -> None:
        entity = Entity(None, {"id": 1, "title": "Hello"})
        assert entity["title"] == "Hello"
        assert entity.title == "Hello"
        assert "title" in entity

    def test_missing_attribute(self) -> None:
        entity = Entity(None, {})
        with pytest.raises(AttributeError, match="no field 'title'"):
            _ = entity.title

    def test_reserved_names_need_item_access(self) -> None:
        entity = Entity(None, {})
        with pytest.raises(AttributeError, match="reserved"):
            entity.exists = True  # type: ignore[misc]
        entity["exists"] = "yes"
        assert entity["exists"] == "yes"
        assert entity.exists is False

    def test_insertion_order_preserved(self) -> None:
        entity = Entity(None, {"b": 1, "a": 2})
        entity.c = 3
        assert list(entity.data()) == ["b", "a", "c"]

    def test_data_is_a_copy(self) -> None:
        entity = Entity(None, {"title": "x"})
        entity.data()["title"] = "y"
        assert entity.title == "x"
        assert entity.data("title") == "x"
        assert entity.data("missing") is None


class TestDirtyTracking:
    def test_new_entity_fields_start_modified(self) -> None:
        entity = Entity(None, {"title": "x", "body": "y"})
        assert entity.modified == ("title", "body")
        assert entity.exists is False

    def test_existing_entity_starts_clean(self) -> None:
        entity = Entity(None, {"title": "x"}, exists=True)
        assert entity.modified == ()
        assert entity.exists is True

    def test_assignment_records_modified_once(self) -> None:
        entity = Entity(None, {"title": "x", "body": "y"}, exists=True)
        entity.body = "z"
        entity["title"] = "w"
        entity.body = "zz"
        assert entity.modified == ("body", "title")

    def test_same_value_is_not_a_change(self) -> None:
        entity = Entity(None, {"title": "x"}, exists=True)
        entity.title = "x"
        assert entity.modified == ()

    def test_set_bulk(self) -> None:
        entity = Entity(None, {}, exists=True)
        entity.set({"a": 1, "b": 2})
        assert entity.modified == ("a", "b")


class TestDetached:
    def test_save_without_mapper(self) -> None:
        with pytest.raises(EntityStateError, match="detached"):
            Entity(None, {}).save()

    def test_key_without_mapper(self) -> None:
        assert Entity(None, {"id": 1}).key() is None


class TestConversion:
    def test_to_dict(self) -> None:
        entity = Entity(None, {"id": 1, "title": "x"})
        assert entity.to("dict") == {"id": 1, "title": "x"}
        assert entity.to("array") == {"id": 1, "title": "x"}

    def test_to_json(self) -> None:
        entity = Entity(None, {"id": 1, "title": "x"})
        assert json.loads(entity.to("json")) == {"id": 1, "title": "x"}

    def test_to_class(self) -> None:
        post = Entity(None, {"id": 1, "title": "x", "extra": True}).to(Post)
        assert post == Post(id=1, title="x")

    def test_nested_entities_export(self) -> None:
        author = Entity(None, {"name": "michael"})
        entity = Entity(None, {"id": 1, "author": author, "tags": [Entity(None, {"t": "a"})]})
        assert entity.to("dict") == {"id": 1, "author": {"name": "michael"}, "tags": [{"t": "a"}]}

    def test_unknown_format(self) -> None:
        with pytest.raises(InvalidOption):
            Entity(None, {}).to("xml")


def _factory(row):
    return Entity(None, row, exists=True)


class TestCollection:
    def test_lazy_wrapping(self) -> None:
        pulled = []

        def rows():
            for i in range(3):
                pulled.append(i)
                yield {"id": i}

        collection = Collection(rows(), _factory)
        assert pulled == []
        assert collection.first()["id"] == 0
        assert pulled == [0]
        assert len(collection) == 3

    def test_iteration_keeps_retrieval_order(self) -> None:
        collection = Collection([{"id": 3}, {"id": 1}, {"id": 2}], _factory)
        assert [entity["id"] for entity in collection] == [3, 1, 2]
        # cached entities are replayed, not re-created
        assert [id(e) for e in collection] == [id(e) for e in collection]

    def test_entities_exist(self) -> None:
        collection = Collection([{"id": 1}], _factory)
        assert collection[0].exists

    def test_indexing_and_slicing(self) -> None:
        collection = Collection([{"id": i} for i in range(5)], _factory)
        assert collection[2]["id"] == 2
        assert collection[-1]["id"] == 4
        assert [e["id"] for e in collection[1:3]] == [1, 2]

    def test_empty(self) -> None:
        collection = Collection([], _factory)
        assert not collection
        assert collection.first() is None
        assert collection.data() == []

    def test_to_formats(self) -> None:
        collection = Collection([{"id": 1, "title": "a"}, {"id": 2, "title": "b"}], _factory)
        assert collection.to("array") == [{"id": 1, "title": "a"}, {"id": 2, "title": "b"}]
        assert json.loads(collection.to("json"))[1]["title"] == "b"
        assert collection.to(Post) == [Post(1, "a"), Post(2, "b")]
