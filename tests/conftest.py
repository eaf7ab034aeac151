"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from row_mapper.backends.memory import MemoryBackend
from row_mapper.backends.sql import SqlBackend
from row_mapper.core.connection import ConnectionConfig
from row_mapper.repository.base import Repository
from row_mapper.repository.config import MapperConfig

POSTS_DDL = (
    "CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, "
    "author TEXT, body TEXT, created INTEGER, published INTEGER DEFAULT 0)"
)

SEED_POSTS = [
    {"title": "First", "author": "michael", "body": "a", "created": 1, "published": 1},
    {"title": "Second", "author": "anna", "body": "b", "created": 3, "published": 0},
    {"title": "Third", "author": "michael", "body": "c", "created": 2, "published": 1},
]


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config."""
    return ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)


@pytest.fixture
def memory_backend() -> MemoryBackend:
    """Memory backend seeded with three posts."""
    return MemoryBackend({"posts": SEED_POSTS})


@pytest.fixture
def sql_backend(sqlite_config: ConnectionConfig):
    """SQLite backend with a seeded posts table."""
    backend = SqlBackend.from_config(sqlite_config)
    backend.execute_raw(POSTS_DDL)
    for post in SEED_POSTS:
        backend.insert("posts", post)
    yield backend
    backend.close()


@pytest.fixture
def post_config() -> MapperConfig:
    """Mapper config for posts with a title rule."""
    return MapperConfig(
        source="posts",
        rules={
            "title": [
                ("not_empty", "Please enter a title."),
                ("length_between", "Title is too long.", {"max": 40}),
            ],
        },
        finders={"published": {"conditions": {"published": 1}}},
    )


@pytest.fixture
def make_posts(post_config: MapperConfig) -> Callable[..., Repository]:
    """Build a posts repository over a backend, optionally overriding config fields."""

    def _make(backend, **overrides) -> Repository:
        config = post_config.model_copy(update=overrides) if overrides else post_config
        return Repository(config, backend)

    return _make


@pytest.fixture
def posts(make_posts, memory_backend: MemoryBackend) -> Repository:
    """Posts repository over the seeded memory backend."""
    return make_posts(memory_backend)
