"""Unit tests for TransactionManager over SQLite."""

from __future__ import annotations

import pytest

from row_mapper.backends.sql import SqlBackend
from row_mapper.core.enums import Aggregate
from row_mapper.core.exceptions import PoolError, TransactionStateError
from row_mapper.core.query import QueryDescriptor

ALL_POSTS = QueryDescriptor(source="posts")


def count(backend: SqlBackend) -> int:
    return backend.execute_aggregate(ALL_POSTS, Aggregate.COUNT)


class TestTransactionManager:
    def test_commit_persists_changes(self, sql_backend: SqlBackend) -> None:
        with sql_backend.transaction() as tx:
            sql_backend.insert("posts", {"title": "Fourth"}, transaction=tx)
        assert tx.state == "committed"
        assert count(sql_backend) == 4

    def test_auto_rollback_on_exception(self, sql_backend: SqlBackend) -> None:
        with pytest.raises(RuntimeError, match="boom"), sql_backend.transaction() as tx:
            sql_backend.insert("posts", {"title": "Fourth"}, transaction=tx)
            sql_backend.delete_by_query(ALL_POSTS, transaction=tx)
            raise RuntimeError("boom")
        assert tx.state == "rolled_back"
        assert count(sql_backend) == 3

    def test_explicit_rollback(self, sql_backend: SqlBackend) -> None:
        with sql_backend.transaction() as tx:
            sql_backend.insert("posts", {"title": "Fourth"}, transaction=tx)
            tx.rollback()
        assert count(sql_backend) == 3

    def test_reads_see_own_writes(self, sql_backend: SqlBackend) -> None:
        with sql_backend.transaction() as tx:
            sql_backend.insert("posts", {"title": "Fourth"}, transaction=tx)
            rows = sql_backend.execute_query(ALL_POSTS, transaction=tx)
            assert len(rows) == 4

    def test_commit_after_rollback(self, sql_backend: SqlBackend) -> None:
        with sql_backend.transaction() as tx:
            tx.rollback()
            with pytest.raises(TransactionStateError):
                tx.commit()

    def test_not_started(self, sql_backend: SqlBackend) -> None:
        tx = sql_backend.transaction()
        with pytest.raises(TransactionStateError):
            tx.commit()
        with pytest.raises(TransactionStateError):
            tx.execute("SELECT 1")

    def test_execute_after_commit(self, sql_backend: SqlBackend) -> None:
        with sql_backend.transaction() as tx:
            pass
        with pytest.raises(TransactionStateError):
            sql_backend.insert("posts", {"title": "late"}, transaction=tx)

    def test_pool_exhausted_outside_transaction(self, sql_backend: SqlBackend) -> None:
        # pool_size=1: the transaction holds the only connection
        with pytest.raises(PoolError), sql_backend.transaction():
            count(sql_backend)
        assert count(sql_backend) == 3
