"""Collection - lazy, ordered sequence of entities from one find call.

Backend rows are wrapped into entities on demand and cached, so iteration
order always matches retrieval order. A collection never re-queries; run the
finder again for fresh data.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, overload

from row_mapper.mapping.convert import convert, export
from row_mapper.mapping.entity import Entity


class Collection:
    """Lazy sequence of Entities.

    Args:
        rows: Raw row mappings in retrieval order.
        factory: Wraps one raw row into an Entity.
    """

    def __init__(
        self,
        rows: Iterable[Mapping[str, Any]],
        factory: Callable[[Mapping[str, Any]], Entity],
    ) -> None:
        self._rows = iter(rows)
        self._factory = factory
        self._entities: list[Entity] = []
        self._exhausted = False

    def _pull(self) -> bool:
        if self._exhausted:
            return False
        try:
            row = next(self._rows)
        except StopIteration:
            self._exhausted = True
            return False
        self._entities.append(self._factory(row))
        return True

    def _fill(self, count: int | None = None) -> None:
        while (count is None or len(self._entities) < count) and self._pull():
            pass

    def __iter__(self) -> Iterator[Entity]:
        index = 0
        while index < len(self._entities) or self._pull():
            yield self._entities[index]
            index += 1

    def __len__(self) -> int:
        self._fill()
        return len(self._entities)

    def __bool__(self) -> bool:
        self._fill(1)
        return bool(self._entities)

    @overload
    def __getitem__(self, index: int) -> Entity: ...

    @overload
    def __getitem__(self, index: slice) -> list[Entity]: ...

    def __getitem__(self, index: int | slice) -> Entity | list[Entity]:
        if isinstance(index, slice) or index < 0:
            self._fill()
        else:
            self._fill(index + 1)
        return self._entities[index]

    def __repr__(self) -> str:
        state = "" if self._exhausted else ", more pending"
        return f"<{type(self).__name__} {len(self._entities)} loaded{state}>"

    def first(self) -> Entity | None:
        """Return the first entity, or None when the collection is empty."""
        self._fill(1)
        return self._entities[0] if self._entities else None

    def data(self) -> list[dict[str, Any]]:
        """Return every entity's data as plain dicts, in retrieval order."""
        return self.to("dict")

    def to(self, format: Any = "dict") -> Any:  # noqa: A002
        return convert([export(entity) for entity in self], format, many=True)
