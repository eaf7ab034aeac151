"""Adapter and storage backend protocols.

SyncAdapter is the driver-level contract used by ConnectionManager.
StorageBackend is the contract the data mapper consumes; every backend
MUST implement it. All methods accept an optional ``transaction`` obtained
from the same backend's ``transaction()``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from row_mapper.core.connection import ConnectionConfig
from row_mapper.core.enums import Aggregate
from row_mapper.core.query import QueryDescriptor


@runtime_checkable
class SyncAdapter(Protocol):
    """Synchronous database driver adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """Parameter binding style: 'named' (:name) or 'pyformat' (%(name)s)."""
        ...

    @property
    def driver_errors(self) -> tuple[type[Exception], ...]:
        """Driver exception types that the backend wraps in BackendError."""
        ...

    def create_pool(self, config: ConnectionConfig) -> Any:
        """Create a connection pool."""
        ...

    def acquire_connection(self, pool: Any) -> Any:
        """Acquire a connection from the pool."""
        ...

    def release_connection(self, connection: Any, pool: Any) -> None:
        """Release a connection back to the pool."""
        ...

    def close_pool(self, pool: Any) -> None:
        """Close the pool and release all connections."""
        ...

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL and return a cursor-like object."""
        ...


@runtime_checkable
class StorageBackend(Protocol):
    """Storage contract consumed by the data mapper.

    Backends raise BackendError for storage failures. Write methods return
    False when the call succeeded but no record was affected.
    """

    def execute_query(
        self, descriptor: QueryDescriptor, *, transaction: Any = None
    ) -> Iterable[dict[str, Any]]:
        """Return raw row mappings matching *descriptor*, in retrieval order."""
        ...

    def execute_aggregate(
        self, descriptor: QueryDescriptor, kind: Aggregate, *, transaction: Any = None
    ) -> Any:
        """Return a scalar aggregate over the rows matching *descriptor*."""
        ...

    def insert(
        self, source: str, data: Mapping[str, Any], *, transaction: Any = None
    ) -> Any:
        """Insert one record and return its identity."""
        ...

    def update_by_identity(
        self,
        source: str,
        identity: Mapping[str, Any],
        data: Mapping[str, Any],
        *,
        transaction: Any = None,
    ) -> bool:
        """Update the record identified by *identity*."""
        ...

    def update_by_query(
        self, descriptor: QueryDescriptor, data: Mapping[str, Any], *, transaction: Any = None
    ) -> bool:
        """Update every record matching *descriptor*."""
        ...

    def delete_by_identity(
        self, source: str, identity: Mapping[str, Any], *, transaction: Any = None
    ) -> bool:
        """Delete the record identified by *identity*."""
        ...

    def delete_by_query(self, descriptor: QueryDescriptor, *, transaction: Any = None) -> bool:
        """Delete every record matching *descriptor*."""
        ...

    def transaction(self) -> Any:
        """Return a transaction context manager for this backend."""
        ...
