"""Mapping protocols.

Mapper turns entity data into typed objects; ModelMapper is the stock
implementation and any object with the same two methods can be passed to
``Entity.to`` / ``Collection.to``. Exportable marks values that convert
themselves recursively (entities and collections).
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class Mapper(Protocol[T]):
    """Base mapper protocol."""

    def map_one(self, row: dict[str, Any]) -> T:
        """Map a single data dict to a target object."""
        ...

    def map_many(self, rows: list[dict[str, Any]]) -> list[T]:
        """Map multiple data dicts to a list of target objects."""
        ...


@runtime_checkable
class Exportable(Protocol):
    """Objects that can render themselves in an output format."""

    def to(self, format: Any) -> Any:  # noqa: A002
        ...
