"""Query descriptors.

A QueryDescriptor is the storage-agnostic shape of one query: which records
(conditions), which columns (fields), in what order, and which page. It is
built fresh for every call and is read-only afterwards.

Condition constraints:
    {"author": "michael"}              -> author = 'michael'
    {"deleted_at": None}               -> deleted_at IS NULL
    {"id": [1, 2, 3]}                  -> id IN (1, 2, 3)
    {"age": {">=": 18, "<": 65}}       -> age >= 18 AND age < 65
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from row_mapper.core.enums import Aggregate, SortDirection
from row_mapper.core.exceptions import InvalidOption

RECOGNIZED_OPTIONS = frozenset({"conditions", "fields", "order", "limit", "page"})

CONDITION_OPERATORS = frozenset(
    {"=", "!=", "<>", "<", "<=", ">", ">=", "like", "not like", "in", "not in"}
)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def check_option_keys(
    options: Mapping[str, Any], allowed: frozenset[str] = RECOGNIZED_OPTIONS
) -> None:
    """Raise InvalidOption if *options* holds any key outside *allowed*."""
    unknown = sorted(set(options) - allowed)
    if unknown:
        raise InvalidOption(
            f"unrecognized option(s) {unknown}; expected any of {sorted(allowed)}",
            option=unknown[0],
        )


def merge_conditions(
    derived: Mapping[str, Any] | None,
    explicit: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Merge two condition mappings. Keys in *explicit* win on collision."""
    merged = dict(derived or {})
    merged.update(explicit or {})
    return merged


def _normalize_constraint(field_name: str, constraint: Any) -> Any:
    if isinstance(constraint, Mapping):
        operators: dict[str, Any] = {}
        for op, value in constraint.items():
            op_name = " ".join(str(op).lower().split())
            if op_name not in CONDITION_OPERATORS:
                raise InvalidOption(
                    f"unsupported operator '{op}' for field '{field_name}'", option="conditions"
                )
            if op_name in ("in", "not in"):
                if not isinstance(value, _SEQUENCE_TYPES):
                    raise InvalidOption(
                        f"operator '{op_name}' for field '{field_name}' needs a sequence",
                        option="conditions",
                    )
                value = tuple(value)
            operators[op_name] = value
        if not operators:
            raise InvalidOption(
                f"empty operator mapping for field '{field_name}'", option="conditions"
            )
        return MappingProxyType(operators)
    if isinstance(constraint, _SEQUENCE_TYPES):
        return tuple(constraint)
    return constraint


def _normalize_conditions(conditions: Any) -> Mapping[str, Any]:
    if conditions is None:
        return MappingProxyType({})
    if not isinstance(conditions, Mapping):
        raise InvalidOption(
            "'conditions' must be a mapping of field -> constraint", option="conditions"
        )

    normalized: dict[str, Any] = {}
    for field_name, constraint in conditions.items():
        if not isinstance(field_name, str) or not field_name:
            raise InvalidOption(
                f"condition keys must be field names, got {field_name!r}", option="conditions"
            )
        normalized[field_name] = _normalize_constraint(field_name, constraint)
    return MappingProxyType(normalized)


def _normalize_fields(fields: Any) -> tuple[str, ...]:
    if fields is None:
        return ()
    if isinstance(fields, str):
        return tuple(name.strip() for name in fields.split(",") if name.strip())
    if isinstance(fields, (list, tuple)) and all(isinstance(name, str) and name for name in fields):
        return tuple(fields)
    raise InvalidOption("'fields' must be a string or a sequence of field names", option="fields")


def _direction(value: Any, field_name: str) -> SortDirection:
    if isinstance(value, SortDirection):
        return value
    try:
        return SortDirection(str(value).upper())
    except ValueError:
        raise InvalidOption(
            f"invalid sort direction {value!r} for field '{field_name}'", option="order"
        ) from None


def _parse_order_term(term: str) -> tuple[str, SortDirection]:
    parts = term.split()
    if not parts or len(parts) > 2:
        raise InvalidOption(f"cannot parse order term {term!r}", option="order")
    direction = parts[1] if len(parts) == 2 else SortDirection.ASC
    return parts[0], _direction(direction, parts[0])


def _normalize_order(order: Any) -> tuple[tuple[str, SortDirection], ...]:
    if order is None:
        return ()
    if isinstance(order, str):
        return tuple(_parse_order_term(term) for term in order.split(",") if term.strip())
    if isinstance(order, Mapping):
        return tuple(
            (str(name), _direction(direction, str(name))) for name, direction in order.items()
        )
    if isinstance(order, (list, tuple)):
        terms: list[tuple[str, SortDirection]] = []
        for item in order:
            if isinstance(item, str):
                terms.append(_parse_order_term(item))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                terms.append((str(item[0]), _direction(item[1], str(item[0]))))
            else:
                raise InvalidOption(f"cannot parse order entry {item!r}", option="order")
        return tuple(terms)
    raise InvalidOption("'order' must be a string, mapping or sequence", option="order")


def _normalize_int(value: Any, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidOption(f"'{name}' must be an integer, got {value!r}", option=name)
    return value


@dataclass(frozen=True)
class QueryDescriptor:
    """Immutable, storage-agnostic representation of one query."""

    source: str
    conditions: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    fields: tuple[str, ...] = ()
    order: tuple[tuple[str, SortDirection], ...] = ()
    limit: int = 0  # 0 = unbounded
    page: int | None = None
    finder: str = "all"
    aggregate: Aggregate | None = None

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise InvalidOption(f"'limit' must be >= 0, got {self.limit}", option="limit")
        if self.page is not None:
            if self.page < 1:
                raise InvalidOption(f"'page' must be >= 1, got {self.page}", option="page")
            if self.limit <= 0:
                raise InvalidOption("'page' requires a positive 'limit'", option="page")

    @classmethod
    def build(
        cls,
        options: Mapping[str, Any] | None = None,
        *,
        source: str,
        finder: str = "all",
        aggregate: Aggregate | None = None,
    ) -> QueryDescriptor:
        """Validate *options* and build a descriptor.

        Args:
            options: Mapping restricted to conditions, fields, order, limit, page.
            source: Table or collection name the query targets.
            finder: Name of the finder that shaped the options.
            aggregate: Aggregate kind for count-style finders.

        Raises:
            InvalidOption: On unknown keys or malformed values, and when
                ``page`` is given without a positive ``limit``.
        """
        options = dict(options or {})
        check_option_keys(options)
        limit = _normalize_int(options.get("limit"), "limit")
        return cls(
            source=source,
            conditions=_normalize_conditions(options.get("conditions")),
            fields=_normalize_fields(options.get("fields")),
            order=_normalize_order(options.get("order")),
            limit=0 if limit is None else limit,
            page=_normalize_int(options.get("page"), "page"),
            finder=finder,
            aggregate=aggregate,
        )

    @property
    def offset(self) -> int:
        """Number of rows to skip: ``(page - 1) * limit``."""
        if self.page is None:
            return 0
        return (self.page - 1) * self.limit

    @property
    def is_unscoped(self) -> bool:
        """True when the descriptor matches every record."""
        return not self.conditions
