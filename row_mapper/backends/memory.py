"""In-memory storage backend.

Keeps each source as a list of row dicts in insertion order and evaluates
QueryDescriptors in Python. Integer keys are assigned from a per-source
sequence when a row is inserted without one. Useful for tests and
prototyping; not safe for concurrent writers.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from row_mapper.core.enums import Aggregate, SortDirection
from row_mapper.core.exceptions import BackendError, TransactionStateError
from row_mapper.core.logging import get_logger
from row_mapper.core.query import QueryDescriptor

logger = get_logger(__name__)


@lru_cache(maxsize=128)
def _like_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a SQL LIKE pattern (% and _) into a case-insensitive regex."""
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if op == "=":
        return actual == expected
    if op in ("!=", "<>"):
        if expected is None:
            return actual is not None
        return actual is not None and actual != expected
    if op == "in":
        return actual in expected
    if op == "not in":
        return actual is not None and actual not in expected
    if actual is None or expected is None:
        return False
    if op in ("like", "not like"):
        found = _like_pattern(str(expected)).match(str(actual)) is not None
        return found if op == "like" else not found
    try:
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
    except TypeError:
        return False
    raise BackendError("query", f"unsupported operator '{op}'")


def matches(row: Mapping[str, Any], conditions: Mapping[str, Any]) -> bool:
    """Return True if *row* satisfies every constraint in *conditions*."""
    for field_name, constraint in conditions.items():
        actual = row.get(field_name)
        if constraint is None:
            if actual is not None:
                return False
        elif isinstance(constraint, tuple):
            if actual not in constraint:
                return False
        elif isinstance(constraint, Mapping):
            if not all(_compare(op, actual, expected) for op, expected in constraint.items()):
                return False
        elif actual != constraint:
            return False
    return True


def _sort(
    rows: list[dict[str, Any]], order: Iterable[tuple[str, SortDirection]]
) -> list[dict[str, Any]]:
    # Stable multi-key sort: apply keys from last to first. NULLs sort first.
    for field_name, direction in reversed(tuple(order)):
        rows.sort(
            key=lambda row: (row.get(field_name) is not None, row.get(field_name)),
            reverse=direction is SortDirection.DESC,
        )
    return rows


class MemoryTransaction:
    """Snapshot transaction for MemoryBackend.

    Operations apply to the live store immediately; rollback (explicit or on
    exception) restores the snapshot taken on enter.
    """

    def __init__(self, backend: MemoryBackend) -> None:
        self._backend = backend
        self._snapshot: Any = None
        self._state = "idle"

    def __enter__(self) -> MemoryTransaction:
        self._snapshot = self._backend._snapshot()
        self._state = "active"
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._state == "active":
            if exc_type is not None:
                self.rollback()
            else:
                self.commit()

    @property
    def state(self) -> str:
        return self._state

    @property
    def active(self) -> bool:
        return self._state == "active"

    def commit(self) -> None:
        if self._state != "active":
            raise TransactionStateError(self._state, "commit")
        self._snapshot = None
        self._state = "committed"

    def rollback(self) -> None:
        if self._state != "active":
            raise TransactionStateError(self._state, "rollback")
        self._backend._restore(self._snapshot)
        self._snapshot = None
        self._state = "rolled_back"


class MemoryBackend:
    """StorageBackend keeping rows in process memory.

    Args:
        tables: Optional initial rows per source.
        key: Name of the identity field used for generated keys.
    """

    def __init__(
        self,
        tables: Mapping[str, Iterable[Mapping[str, Any]]] | None = None,
        *,
        key: str = "id",
    ) -> None:
        self._key = key
        self._tables: dict[str, list[dict[str, Any]]] = {}
        self._sequences: dict[str, int] = {}
        for source, rows in (tables or {}).items():
            for row in rows:
                self.insert(source, row)

    def _table(self, source: str) -> list[dict[str, Any]]:
        return self._tables.setdefault(source, [])

    def _snapshot(self) -> tuple[dict[str, list[dict[str, Any]]], dict[str, int]]:
        return copy.deepcopy(self._tables), dict(self._sequences)

    def _restore(self, snapshot: tuple[dict[str, list[dict[str, Any]]], dict[str, int]]) -> None:
        self._tables, self._sequences = snapshot

    def _check_transaction(self, transaction: Any) -> None:
        if transaction is not None and not transaction.active:
            raise TransactionStateError(transaction.state, "execute")

    def rows(self, source: str) -> list[dict[str, Any]]:
        """Return a copy of every row stored for *source*."""
        return copy.deepcopy(self._tables.get(source, []))

    def execute_query(
        self, descriptor: QueryDescriptor, *, transaction: Any = None
    ) -> list[dict[str, Any]]:
        self._check_transaction(transaction)
        table = self._table(descriptor.source)
        rows = [copy.deepcopy(row) for row in table if matches(row, descriptor.conditions)]
        try:
            rows = _sort(rows, descriptor.order)
        except TypeError as e:
            raise BackendError("query", e) from e

        if descriptor.limit:
            rows = rows[descriptor.offset : descriptor.offset + descriptor.limit]
        if descriptor.fields:
            rows = [{name: row.get(name) for name in descriptor.fields} for row in rows]
        logger.debug("memory_query", source=descriptor.source, rows=len(rows))
        return rows

    def execute_aggregate(
        self, descriptor: QueryDescriptor, kind: Aggregate, *, transaction: Any = None
    ) -> Any:
        self._check_transaction(transaction)
        if kind is not Aggregate.COUNT:
            raise BackendError("aggregate", f"unsupported aggregate {kind!r}")
        table = self._table(descriptor.source)
        return sum(1 for row in table if matches(row, descriptor.conditions))

    def insert(self, source: str, data: Mapping[str, Any], *, transaction: Any = None) -> Any:
        self._check_transaction(transaction)
        table = self._table(source)
        row = copy.deepcopy(dict(data))
        identity = row.get(self._key)
        if identity is None:
            identity = self._sequences.get(source, 0) + 1
            row[self._key] = identity
        elif any(existing.get(self._key) == identity for existing in table):
            raise BackendError("insert", f"duplicate key {self._key}={identity!r} in '{source}'")
        if isinstance(identity, int) and not isinstance(identity, bool):
            self._sequences[source] = max(self._sequences.get(source, 0), identity)
        table.append(row)
        return identity

    def _update(self, source: str, conditions: Mapping[str, Any], data: Mapping[str, Any]) -> int:
        affected = 0
        for row in self._table(source):
            if matches(row, conditions):
                row.update(copy.deepcopy(dict(data)))
                affected += 1
        return affected

    def _delete(self, source: str, conditions: Mapping[str, Any]) -> int:
        table = self._table(source)
        kept = [row for row in table if not matches(row, conditions)]
        affected = len(table) - len(kept)
        table[:] = kept
        return affected

    def update_by_identity(
        self,
        source: str,
        identity: Mapping[str, Any],
        data: Mapping[str, Any],
        *,
        transaction: Any = None,
    ) -> bool:
        self._check_transaction(transaction)
        return self._update(source, identity, data) > 0

    def update_by_query(
        self, descriptor: QueryDescriptor, data: Mapping[str, Any], *, transaction: Any = None
    ) -> bool:
        self._check_transaction(transaction)
        self._update(descriptor.source, descriptor.conditions, data)
        return True

    def delete_by_identity(
        self, source: str, identity: Mapping[str, Any], *, transaction: Any = None
    ) -> bool:
        self._check_transaction(transaction)
        return self._delete(source, identity) > 0

    def delete_by_query(self, descriptor: QueryDescriptor, *, transaction: Any = None) -> bool:
        self._check_transaction(transaction)
        self._delete(descriptor.source, descriptor.conditions)
        return True

    def transaction(self) -> MemoryTransaction:
        """Create a snapshot transaction."""
        return MemoryTransaction(self)
