"""SQL storage backend.

Compiles QueryDescriptors to parameterised SQL and executes them through a
ConnectionManager. Driver exceptions are wrapped in BackendError; they are
never exposed to callers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from row_mapper.core.compiler import (
    CompiledQuery,
    compile_count,
    compile_delete,
    compile_insert,
    compile_select,
    compile_update,
)
from row_mapper.core.connection import ConnectionConfig, ConnectionManager
from row_mapper.core.enums import Aggregate
from row_mapper.core.exceptions import BackendError
from row_mapper.core.logging import get_logger
from row_mapper.core.query import QueryDescriptor
from row_mapper.core.transaction import TransactionManager

logger = get_logger(__name__)


def _rows_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor results to list of dicts.

    Handles both tuple-like rows and mapping-like rows from different drivers.
    """
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    rows = cursor.fetchall()
    if not rows:
        return []

    first_row = rows[0]
    if isinstance(first_row, dict):
        return [dict(row) for row in rows]

    # Tuple-like rows (sqlite3.Row included), zip with columns
    return [dict(zip(columns, tuple(row), strict=True)) for row in rows]


def _scalar(cursor: Any) -> Any:
    row = cursor.fetchone()
    if row is None:
        return None
    if isinstance(row, dict):
        return next(iter(row.values()))
    return row[0]


class SqlBackend:
    """StorageBackend over a SQL database.

    Args:
        connection_manager: Pool-backed connection manager for the database.
    """

    def __init__(self, connection_manager: ConnectionManager) -> None:
        self._connection_manager = connection_manager
        self._adapter = connection_manager.adapter
        self._paramstyle: str = self._adapter.paramstyle

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> SqlBackend:
        """Create a SqlBackend from a ConnectionConfig."""
        return cls(ConnectionManager(config))

    @property
    def connection_manager(self) -> ConnectionManager:
        return self._connection_manager

    def _run(
        self,
        operation: str,
        compiled: CompiledQuery,
        transaction: TransactionManager | None,
        consume: Any,
        *,
        write: bool,
    ) -> Any:
        logger.debug("sql_execute", operation=operation, sql=compiled.sql)
        try:
            if transaction is not None:
                return consume(transaction.execute(compiled.sql, compiled.params))

            with self._connection_manager.get_connection() as conn:
                try:
                    result = consume(self._adapter.execute(conn, compiled.sql, compiled.params))
                    if write:
                        conn.commit()
                except self._adapter.driver_errors:
                    if write:
                        conn.rollback()
                    raise
                return result
        except self._adapter.driver_errors as e:
            logger.error("backend_error", operation=operation, sql=compiled.sql, error=str(e))
            raise BackendError(operation, e) from e

    def execute_query(
        self, descriptor: QueryDescriptor, *, transaction: TransactionManager | None = None
    ) -> list[dict[str, Any]]:
        compiled = compile_select(descriptor, self._paramstyle)
        return self._run("query", compiled, transaction, _rows_to_dicts, write=False)

    def execute_aggregate(
        self,
        descriptor: QueryDescriptor,
        kind: Aggregate,
        *,
        transaction: TransactionManager | None = None,
    ) -> Any:
        if kind is not Aggregate.COUNT:
            raise BackendError("aggregate", f"unsupported aggregate {kind!r}")
        compiled = compile_count(descriptor, self._paramstyle)
        return self._run("aggregate", compiled, transaction, _scalar, write=False)

    def insert(
        self,
        source: str,
        data: Mapping[str, Any],
        *,
        transaction: TransactionManager | None = None,
    ) -> Any:
        compiled = compile_insert(source, data, self._paramstyle)
        return self._run(
            "insert", compiled, transaction, lambda cursor: cursor.lastrowid, write=True
        )

    def update_by_identity(
        self,
        source: str,
        identity: Mapping[str, Any],
        data: Mapping[str, Any],
        *,
        transaction: TransactionManager | None = None,
    ) -> bool:
        descriptor = QueryDescriptor.build({"conditions": dict(identity)}, source=source)
        compiled = compile_update(descriptor, data, self._paramstyle)
        affected = self._run("update", compiled, transaction, _rowcount, write=True)
        return affected > 0

    def update_by_query(
        self,
        descriptor: QueryDescriptor,
        data: Mapping[str, Any],
        *,
        transaction: TransactionManager | None = None,
    ) -> bool:
        compiled = compile_update(descriptor, data, self._paramstyle)
        self._run("update", compiled, transaction, _rowcount, write=True)
        return True

    def delete_by_identity(
        self,
        source: str,
        identity: Mapping[str, Any],
        *,
        transaction: TransactionManager | None = None,
    ) -> bool:
        descriptor = QueryDescriptor.build({"conditions": dict(identity)}, source=source)
        compiled = compile_delete(descriptor, self._paramstyle)
        affected = self._run("delete", compiled, transaction, _rowcount, write=True)
        return affected > 0

    def delete_by_query(
        self, descriptor: QueryDescriptor, *, transaction: TransactionManager | None = None
    ) -> bool:
        compiled = compile_delete(descriptor, self._paramstyle)
        self._run("delete", compiled, transaction, _rowcount, write=True)
        return True

    def execute_raw(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """Execute a trusted statement (DDL, fixtures). Returns affected row count."""
        return self._run("raw", CompiledQuery(sql, params or {}), None, _rowcount, write=True)

    def transaction(self) -> TransactionManager:
        """Create a new transaction context manager."""
        return TransactionManager(self._connection_manager)

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._connection_manager.close_pool()


def _rowcount(cursor: Any) -> int:
    return int(cursor.rowcount)
