"""Contract tests: every storage backend honours the StorageBackend protocol."""

from __future__ import annotations

import pytest

from row_mapper.adapters.protocol import StorageBackend, SyncAdapter
from row_mapper.adapters.sqlite import SqliteSyncAdapter
from row_mapper.core.connection import ConnectionConfig
from row_mapper.core.enums import Aggregate
from row_mapper.core.query import QueryDescriptor


@pytest.fixture(params=["memory_backend", "sql_backend"])
def backend(request: pytest.FixtureRequest) -> StorageBackend:
    """Each seeded backend in turn."""
    return request.getfixturevalue(request.param)


def build(**options) -> QueryDescriptor:
    return QueryDescriptor.build(options, source="posts")


def titles(backend: StorageBackend, **options) -> list[str]:
    return [row["title"] for row in backend.execute_query(build(**options))]


class TestStorageBackendContract:
    def test_implements_protocol(self, backend: StorageBackend) -> None:
        assert isinstance(backend, StorageBackend)

    def test_rows_are_mappings_in_retrieval_order(self, backend: StorageBackend) -> None:
        rows = list(backend.execute_query(build(order="id")))
        assert [row["id"] for row in rows] == [1, 2, 3]
        assert all(isinstance(row, dict) for row in rows)

    def test_conditions(self, backend: StorageBackend) -> None:
        assert titles(backend, conditions={"author": "michael"}, order="id") == ["First", "Third"]
        assert titles(backend, conditions={"id": [2, 3]}, order="id") == ["Second", "Third"]
        assert titles(backend, conditions={"created": {">=": 2}}, order="created") == [
            "Third",
            "Second",
        ]
        assert titles(backend, conditions={"title": {"like": "%ir%"}}, order="id") == [
            "First",
            "Third",
        ]
        assert titles(backend, conditions={"id": []}) == []

    def test_null_conditions(self, backend: StorageBackend) -> None:
        backend.insert("posts", {"title": "Untitled body", "body": None})
        assert titles(backend, conditions={"body": None}) == ["Untitled body"]
        assert len(titles(backend, conditions={"body": {"!=": None}})) == 3

    def test_order_and_paging(self, backend: StorageBackend) -> None:
        assert titles(backend, order={"created": "DESC"}) == ["Second", "Third", "First"]
        assert titles(backend, order="created", limit=2, page=2) == ["Second"]

    def test_fields(self, backend: StorageBackend) -> None:
        rows = list(backend.execute_query(build(fields=["id", "title"], order="id", limit=1)))
        assert rows == [{"id": 1, "title": "First"}]

    def test_count(self, backend: StorageBackend) -> None:
        assert backend.execute_aggregate(build(), Aggregate.COUNT) == 3
        assert backend.execute_aggregate(build(conditions={"published": 0}), Aggregate.COUNT) == 1

    def test_insert_returns_identity(self, backend: StorageBackend) -> None:
        identity = backend.insert("posts", {"title": "Fourth", "author": "anna"})
        assert identity == 4
        rows = list(backend.execute_query(build(conditions={"id": identity})))
        assert rows[0]["title"] == "Fourth"

    def test_update_by_identity(self, backend: StorageBackend) -> None:
        assert backend.update_by_identity("posts", {"id": 1}, {"title": "1st"}) is True
        assert titles(backend, conditions={"id": 1}) == ["1st"]
        assert backend.update_by_identity("posts", {"id": 99}, {"title": "x"}) is False

    def test_update_by_query(self, backend: StorageBackend) -> None:
        assert backend.update_by_query(build(conditions={"author": "michael"}), {"published": 0})
        assert backend.execute_aggregate(build(conditions={"published": 0}), Aggregate.COUNT) == 3
        assert backend.update_by_query(build(conditions={"author": "nobody"}), {"published": 1})

    def test_delete_by_identity(self, backend: StorageBackend) -> None:
        assert backend.delete_by_identity("posts", {"id": 2}) is True
        assert backend.delete_by_identity("posts", {"id": 2}) is False
        assert titles(backend, order="id") == ["First", "Third"]

    def test_delete_by_query(self, backend: StorageBackend) -> None:
        assert backend.delete_by_query(build(conditions={"published": 1})) is True
        assert titles(backend) == ["Second"]
        assert backend.delete_by_query(build(conditions={"published": 1})) is True

    def test_transaction_rollback(self, backend: StorageBackend) -> None:
        with pytest.raises(RuntimeError), backend.transaction() as tx:
            backend.insert("posts", {"title": "Gone"}, transaction=tx)
            backend.update_by_identity("posts", {"id": 1}, {"title": "Changed"}, transaction=tx)
            raise RuntimeError("abort")
        assert titles(backend, order="id") == ["First", "Second", "Third"]

    def test_transaction_commit(self, backend: StorageBackend) -> None:
        with backend.transaction() as tx:
            backend.delete_by_identity("posts", {"id": 3}, transaction=tx)
            assert len(list(backend.execute_query(build(), transaction=tx))) == 2
        assert backend.execute_aggregate(build(), Aggregate.COUNT) == 2


class TestSqliteSyncAdapterProtocol:
    def test_implements_sync_protocol(self) -> None:
        assert isinstance(SqliteSyncAdapter(), SyncAdapter)

    def test_paramstyle(self) -> None:
        assert SqliteSyncAdapter().paramstyle == "named"

    def test_lifecycle(self, sqlite_config: ConnectionConfig) -> None:
        adapter = SqliteSyncAdapter()
        pool = adapter.create_pool(sqlite_config)
        assert len(pool) == 1

        conn = adapter.acquire_connection(pool)
        cursor = adapter.execute(conn, "SELECT 1 AS val")
        assert cursor.fetchone()["val"] == 1

        adapter.release_connection(conn, pool)
        assert len(pool) == 1

        adapter.close_pool(pool)
        assert len(pool) == 0
