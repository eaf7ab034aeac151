"""Entity-data-to-model mapper.

Supports dataclasses, Pydantic models, and plain classes. Entity data often
carries more columns than a target model declares, so by default unknown
keys are dropped before construction.
"""

from __future__ import annotations

import dataclasses
import inspect
from typing import Any, Generic, TypeVar

from row_mapper.core.exceptions import ColumnMismatchError

T = TypeVar("T")


def _is_pydantic_model(cls: type) -> bool:
    """Check if a class is a Pydantic BaseModel."""
    from pydantic import BaseModel

    return isinstance(cls, type) and issubclass(cls, BaseModel)


def _field_names(cls: type) -> tuple[list[str], list[str]]:
    """Return ``(accepted, required)`` field names for *cls*."""
    if _is_pydantic_model(cls):
        fields = cls.model_fields  # type: ignore[attr-defined]
        return list(fields), [name for name, info in fields.items() if info.is_required()]

    if dataclasses.is_dataclass(cls):
        accepted = [f.name for f in dataclasses.fields(cls) if f.init]
        required = [
            f.name
            for f in dataclasses.fields(cls)
            if f.init
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        ]
        return accepted, required

    try:
        sig = inspect.signature(cls.__init__)  # type: ignore[misc]
    except (ValueError, TypeError):
        return [], []
    params = [p for name, p in sig.parameters.items() if name != "self"]
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params):
        return [], []  # accepts anything
    accepted = [p.name for p in params if p.kind is not inspect.Parameter.VAR_POSITIONAL]
    required = [
        p.name for p in params if p.default is inspect.Parameter.empty and p.name in accepted
    ]
    return accepted, required


class ModelMapper(Generic[T]):
    """Map entity data dicts onto instances of *target_class*.

    Detection order:
    1. Pydantic BaseModel -> model_validate(data)
    2. dataclass / plain class -> target_class(**data)

    Args:
        target_class: The class to construct.
        aliases: Optional data-key to field-name mapping.
        ignore_extra: Drop keys the target class does not accept.
    """

    def __init__(
        self,
        target_class: type[T],
        aliases: dict[str, str] | None = None,
        ignore_extra: bool = True,
    ) -> None:
        self._target_class = target_class
        self._aliases = aliases or {}
        self._ignore_extra = ignore_extra
        self._is_pydantic = _is_pydantic_model(target_class)
        self._accepted, self._required = _field_names(target_class)

    def _prepare(self, row: dict[str, Any]) -> dict[str, Any]:
        data = {self._aliases.get(key, key): value for key, value in row.items()}
        if self._ignore_extra and self._accepted:
            data = {key: value for key, value in data.items() if key in self._accepted}
        missing = [name for name in self._required if name not in data]
        if missing:
            raise ColumnMismatchError(self._target_class.__name__, missing)
        return data

    def map_one(self, row: dict[str, Any]) -> T:
        """Map a single data dict to a target_class instance."""
        data = self._prepare(row)

        if self._is_pydantic:
            try:
                return self._target_class.model_validate(data)  # type: ignore[attr-defined]
            except Exception as e:
                raise ColumnMismatchError(self._target_class.__name__, [str(e)]) from e

        try:
            return self._target_class(**data)
        except TypeError as e:
            raise ColumnMismatchError(self._target_class.__name__, [str(e)]) from e

    def map_many(self, rows: list[dict[str, Any]]) -> list[T]:
        """Map all rows via map_one."""
        return [self.map_one(row) for row in rows]
