"""Finder registry - named query templates resolved to QueryDescriptors.

Built-in finders:
    all    -> every matching record, as a Collection
    first  -> limit 1, unwrapped to a single Entity or None
    count  -> aggregate, returns an int
    list   -> {key: title} mapping

Dynamic finder names are parsed at call time:
    findAllByAuthor("michael")           -> all,   {"author": "michael"}
    findByTitleAndAuthor("x", "y")       -> first, {"title": "x", "author": "y"}
    find_count_by_status("draft")        -> count, {"status": "draft"}
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from row_mapper.core.enums import Aggregate
from row_mapper.core.exceptions import ConfigurationError, InvalidOption, UnknownFinder
from row_mapper.core.query import QueryDescriptor, check_option_keys, merge_conditions

_CAMEL_FINDER = re.compile(r"^find(?P<type>[A-Z][A-Za-z0-9]*?)?By(?P<fields>[A-Z][A-Za-z0-9]*)$")
_SNAKE_FINDER = re.compile(r"^find_(?:(?P<type>[a-z0-9_]+?)_)?by_(?P<fields>[a-z0-9_]+)$")
_CAMEL_AND = re.compile(r"And(?=[A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"(?<=[A-Z])(?=[A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Base finder used when the call name has no type segment (findByX).
_DEFAULT_DYNAMIC_TYPE = "first"


@dataclass(frozen=True)
class SourceMeta:
    """What finders need to know about the mapped source."""

    source: str
    key: str = "id"
    title: str = "title"


FinderQuery = Callable[[dict[str, Any], SourceMeta], dict[str, Any]]
FinderResult = Callable[[Any, SourceMeta], Any]


@dataclass(frozen=True)
class Finder:
    """A named query template.

    Attributes:
        name: Registered name.
        query: Transforms caller options before the descriptor is built.
        result: Reshapes the Collection produced by the backend rows.
            ``None`` returns the Collection itself.
        aggregate: Aggregate kind; aggregate finders return a scalar.
    """

    name: str
    query: FinderQuery | None = None
    result: FinderResult | None = None
    aggregate: Aggregate | None = None

    def shape(self, options: dict[str, Any], meta: SourceMeta) -> dict[str, Any]:
        if self.query is None:
            return options
        return self.query(options, meta)


@dataclass(frozen=True)
class DynamicFinder:
    """A dynamic finder call name split into its base finder and fields."""

    base: str
    fields: tuple[str, ...]

    def conditions(self, values: Sequence[Any]) -> dict[str, Any]:
        if len(values) != len(self.fields):
            raise InvalidOption(
                f"dynamic finder on {list(self.fields)} expects {len(self.fields)} "
                f"value(s), got {len(values)}"
            )
        return dict(zip(self.fields, values))


def underscore(word: str) -> str:
    """Convert a CamelCase segment to snake_case (``AuthorName`` -> ``author_name``)."""
    word = _ACRONYM_BOUNDARY.sub("_", word)
    word = _WORD_BOUNDARY.sub("_", word)
    return word.lower()


def parse_dynamic_finder(name: str) -> DynamicFinder | None:
    """Parse ``find<Type>By<Field>And<Field>`` style names.

    Returns None when *name* is not a dynamic finder name.
    """
    match = _CAMEL_FINDER.match(name)
    if match is not None:
        base = underscore(match.group("type")) if match.group("type") else _DEFAULT_DYNAMIC_TYPE
        fields = tuple(underscore(part) for part in _CAMEL_AND.split(match.group("fields")))
        return DynamicFinder(base=base, fields=fields)

    match = _SNAKE_FINDER.match(name)
    if match is not None:
        base = match.group("type") or _DEFAULT_DYNAMIC_TYPE
        fields = tuple(part for part in match.group("fields").split("_and_") if part)
        if not fields:
            return None
        return DynamicFinder(base=base, fields=fields)

    return None


# --- Built-in finders ---


def _first_query(options: dict[str, Any], meta: SourceMeta) -> dict[str, Any]:
    return {**options, "limit": 1}


def _first_result(collection: Any, meta: SourceMeta) -> Any:
    return collection.first()


def _count_query(options: dict[str, Any], meta: SourceMeta) -> dict[str, Any]:
    return {k: v for k, v in options.items() if k not in ("fields", "order", "limit", "page")}


def _list_query(options: dict[str, Any], meta: SourceMeta) -> dict[str, Any]:
    return {**options, "fields": [meta.key, meta.title]}


def _list_result(collection: Any, meta: SourceMeta) -> dict[Any, Any]:
    return {entity.data(meta.key): entity.data(meta.title) for entity in collection}


BUILTIN_FINDERS: tuple[Finder, ...] = (
    Finder("all"),
    Finder("first", query=_first_query, result=_first_result),
    Finder("count", query=_count_query, aggregate=Aggregate.COUNT),
    Finder("list", query=_list_query, result=_list_result),
)


def _defaults_finder(name: str, defaults: Mapping[str, Any]) -> Finder:
    """Build a finder that merges a mapping of default options into each call."""
    try:
        check_option_keys(defaults)
    except InvalidOption as e:
        raise ConfigurationError(f"Finder '{name}' has invalid defaults: {e}") from e
    defaults = dict(defaults)

    def query(options: dict[str, Any], meta: SourceMeta) -> dict[str, Any]:
        merged = {**defaults, **options}
        if "conditions" in defaults or "conditions" in options:
            merged["conditions"] = merge_conditions(
                defaults.get("conditions"), options.get("conditions")
            )
        return merged

    return Finder(name, query=query)


class FinderRegistry:
    """Registry of named finders.

    Built-ins are registered first, then any extra definitions in order, so
    a later registration overrides an earlier one of the same name. Once
    frozen the registry is read-only for the lifetime of the mapper.

    Args:
        finders: Optional name -> definition mapping. A definition is a
            Finder, a query callable ``(options, meta) -> options``, or a
            mapping of default options.
    """

    def __init__(self, finders: Mapping[str, Any] | None = None) -> None:
        self._finders: dict[str, Finder] = {}
        self._frozen = False
        for finder in BUILTIN_FINDERS:
            self._finders[finder.name] = finder
        for name, definition in (finders or {}).items():
            self.register(name, definition)

    def register(self, name: str, definition: Finder | FinderQuery | Mapping[str, Any]) -> Finder:
        """Add or override a finder. Later registration wins."""
        if self._frozen:
            raise ConfigurationError(f"Cannot register finder '{name}': registry is frozen")
        if not name or not isinstance(name, str):
            raise ConfigurationError(f"Finder names must be non-empty strings, got {name!r}")

        if isinstance(definition, Finder):
            finder = replace(definition, name=name)
        elif isinstance(definition, Mapping):
            finder = _defaults_finder(name, definition)
        elif callable(definition):
            finder = Finder(name, query=definition)
        else:
            raise ConfigurationError(f"Unsupported definition for finder '{name}': {definition!r}")

        self._finders[name] = finder
        return finder

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Finder:
        """Look up a finder by name.

        Raises:
            UnknownFinder: If no finder is registered under *name*.
        """
        try:
            return self._finders[name]
        except KeyError:
            raise UnknownFinder(name) from None

    def has(self, name: str) -> bool:
        """Check if a finder name is registered."""
        return name in self._finders

    @property
    def names(self) -> list[str]:
        """List all registered finder names, sorted alphabetically."""
        return sorted(self._finders)

    def __contains__(self, name: object) -> bool:
        return name in self._finders

    def __len__(self) -> int:
        return len(self._finders)

    def resolve(
        self,
        name: str,
        options: Mapping[str, Any] | None,
        meta: SourceMeta,
    ) -> QueryDescriptor:
        """Resolve a finder name and caller options to a QueryDescriptor."""
        finder = self.get(name)
        options = dict(options or {})
        check_option_keys(options)
        shaped = finder.shape(options, meta)
        return QueryDescriptor.build(
            shaped,
            source=meta.source,
            finder=name,
            aggregate=finder.aggregate,
        )

    def resolve_dynamic(
        self,
        call_name: str,
        values: Sequence[Any],
        options: Mapping[str, Any] | None,
        meta: SourceMeta,
    ) -> QueryDescriptor:
        """Resolve a dynamic finder call such as ``findAllByAuthor('michael')``.

        Conditions derived from the call name are merged with explicit
        ``conditions`` in *options*; the explicit ones win on collision.

        Raises:
            UnknownFinder: If the name is not a dynamic finder or its base
                finder type is not registered.
            InvalidOption: If the number of values does not match the fields.
        """
        dynamic = parse_dynamic_finder(call_name)
        if dynamic is None or dynamic.base not in self._finders:
            raise UnknownFinder(call_name)

        options = dict(options or {})
        derived = dynamic.conditions(values)
        options["conditions"] = merge_conditions(derived, options.get("conditions"))
        return self.resolve(dynamic.base, options, meta)
