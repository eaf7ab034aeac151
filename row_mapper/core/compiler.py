"""SQL compilation of QueryDescriptors.

Condition values are always emitted as bound parameters. Field names in
``fields``, ``order`` and condition keys are interpolated as-is: callers must
never pass untrusted input in those positions.

Parameters are generated as ``p0, p1, ...`` in the adapter's paramstyle:
    named    -> :p0
    pyformat -> %(p0)s
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from row_mapper.core.exceptions import InvalidOption
from row_mapper.core.query import QueryDescriptor

_OPERATOR_SQL = {
    "=": "=",
    "!=": "!=",
    "<>": "<>",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
    "like": "LIKE",
    "not like": "NOT LIKE",
}


@dataclass
class CompiledQuery:
    """SQL text plus its bound parameters."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)


class _Params:
    """Collects bound parameters and renders placeholders."""

    def __init__(self, paramstyle: str) -> None:
        if paramstyle not in ("named", "pyformat"):
            raise InvalidOption(f"unsupported paramstyle '{paramstyle}'")
        self._paramstyle = paramstyle
        self.values: dict[str, Any] = {}

    def bind(self, value: Any) -> str:
        name = f"p{len(self.values)}"
        self.values[name] = value
        if self._paramstyle == "named":
            return f":{name}"
        return f"%({name})s"


def _compile_constraint(field_name: str, constraint: Any, params: _Params) -> list[str]:
    if constraint is None:
        return [f"{field_name} IS NULL"]
    if isinstance(constraint, tuple):
        return [_compile_in(field_name, constraint, params, negate=False)]
    if isinstance(constraint, Mapping):
        clauses: list[str] = []
        for op, value in constraint.items():
            if op in ("in", "not in"):
                clauses.append(_compile_in(field_name, value, params, negate=op == "not in"))
            elif value is None and op == "=":
                clauses.append(f"{field_name} IS NULL")
            elif value is None and op in ("!=", "<>"):
                clauses.append(f"{field_name} IS NOT NULL")
            else:
                clauses.append(f"{field_name} {_OPERATOR_SQL[op]} {params.bind(value)}")
        return clauses
    return [f"{field_name} = {params.bind(constraint)}"]


def _compile_in(field_name: str, values: tuple[Any, ...], params: _Params, *, negate: bool) -> str:
    if not values:
        # Empty IN matches nothing; empty NOT IN matches everything.
        return "1 = 1" if negate else "1 = 0"
    placeholders = ", ".join(params.bind(value) for value in values)
    keyword = "NOT IN" if negate else "IN"
    return f"{field_name} {keyword} ({placeholders})"


def _where(descriptor: QueryDescriptor, params: _Params) -> str:
    clauses: list[str] = []
    for field_name, constraint in descriptor.conditions.items():
        clauses.extend(_compile_constraint(field_name, constraint, params))
    if not clauses:
        return ""
    return " WHERE " + " AND ".join(clauses)


def _order_limit(descriptor: QueryDescriptor) -> str:
    sql = ""
    if descriptor.order:
        terms = ", ".join(f"{name} {direction.value}" for name, direction in descriptor.order)
        sql += f" ORDER BY {terms}"
    if descriptor.limit:
        sql += f" LIMIT {int(descriptor.limit)}"
        if descriptor.offset:
            sql += f" OFFSET {int(descriptor.offset)}"
    return sql


def compile_select(descriptor: QueryDescriptor, paramstyle: str = "named") -> CompiledQuery:
    """Compile a descriptor to a SELECT statement."""
    params = _Params(paramstyle)
    columns = ", ".join(descriptor.fields) if descriptor.fields else "*"
    sql = f"SELECT {columns} FROM {descriptor.source}"
    sql += _where(descriptor, params)
    sql += _order_limit(descriptor)
    return CompiledQuery(sql, params.values)


def compile_count(descriptor: QueryDescriptor, paramstyle: str = "named") -> CompiledQuery:
    """Compile a descriptor to a COUNT(*) statement (order/limit ignored)."""
    params = _Params(paramstyle)
    sql = f"SELECT COUNT(*) AS count FROM {descriptor.source}"
    sql += _where(descriptor, params)
    return CompiledQuery(sql, params.values)


def compile_insert(
    source: str, data: Mapping[str, Any], paramstyle: str = "named"
) -> CompiledQuery:
    """Compile an INSERT for one record."""
    params = _Params(paramstyle)
    if not data:
        return CompiledQuery(f"INSERT INTO {source} DEFAULT VALUES")
    columns = ", ".join(data)
    values = ", ".join(params.bind(value) for value in data.values())
    return CompiledQuery(f"INSERT INTO {source} ({columns}) VALUES ({values})", params.values)


def compile_update(
    descriptor: QueryDescriptor,
    data: Mapping[str, Any],
    paramstyle: str = "named",
) -> CompiledQuery:
    """Compile an UPDATE of *data* for every record matching *descriptor*."""
    if not data:
        raise InvalidOption("update needs at least one field to write")
    params = _Params(paramstyle)
    assignments = ", ".join(f"{name} = {params.bind(value)}" for name, value in data.items())
    sql = f"UPDATE {descriptor.source} SET {assignments}"
    sql += _where(descriptor, params)
    return CompiledQuery(sql, params.values)


def compile_delete(descriptor: QueryDescriptor, paramstyle: str = "named") -> CompiledQuery:
    """Compile a DELETE for every record matching *descriptor*."""
    params = _Params(paramstyle)
    sql = f"DELETE FROM {descriptor.source}"
    sql += _where(descriptor, params)
    return CompiledQuery(sql, params.values)
