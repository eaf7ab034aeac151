"""Entity - one in-memory record mapped to at most one storage row.

Fields are read and written by item (``post["title"]``) or attribute
(``post.title``). Attribute names that collide with Entity's own API
(``exists``, ``save``, ...) must use item access.

Persistence calls forward to the owning mapper, which is a plain
back-reference: the entity does not own it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from row_mapper.core.exceptions import EntityStateError
from row_mapper.mapping.convert import convert, export

if TYPE_CHECKING:
    from row_mapper.repository.base import Repository

_MISSING = object()


class Entity:
    """A mutable bag of fields tracking existence and dirty state.

    Args:
        mapper: Owning data mapper, used to route save/delete/validates.
        data: Initial field values; insertion order is kept.
        exists: Whether a storage record is known to exist. Fields of a
            new entity start out modified; those of an existing one do not.
    """

    def __init__(
        self,
        mapper: Repository | None,
        data: Mapping[str, Any] | None = None,
        *,
        exists: bool = False,
    ) -> None:
        object.__setattr__(self, "_mapper", mapper)
        object.__setattr__(self, "_data", dict(data or {}))
        object.__setattr__(self, "_exists", bool(exists))
        object.__setattr__(self, "_deleted", False)
        object.__setattr__(self, "_errors", {})
        modified = {} if exists else dict.fromkeys(self._data)
        object.__setattr__(self, "_modified", modified)
        identity = None
        if exists and mapper is not None:
            identity = self._data.get(mapper.key_field)
        object.__setattr__(self, "_identity", identity)

    # --- field access ---

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no field '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        elif hasattr(type(self), name):
            raise AttributeError(f"'{name}' is reserved on {type(self).__name__}; use item access")
        else:
            self[name] = value

    def __getitem__(self, name: str) -> Any:
        return self._data[name]

    def __setitem__(self, name: str, value: Any) -> None:
        current = self._data.get(name, _MISSING)
        if current is _MISSING or current != value:
            self._modified[name] = None
        self._data[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __repr__(self) -> str:
        state = "deleted" if self._deleted else ("exists" if self._exists else "new")
        return f"<{type(self).__name__} {state} {self._data!r}>"

    def set(self, data: Mapping[str, Any]) -> Entity:
        """Assign several fields at once."""
        for name, value in data.items():
            self[name] = value
        return self

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def data(self, field: str | None = None) -> Any:
        """Return a copy of all field values, or the value of one field."""
        if field is not None:
            return self._data.get(field)
        return dict(self._data)

    # --- state ---

    @property
    def mapper(self) -> Repository | None:
        return self._mapper

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def deleted(self) -> bool:
        return self._deleted

    @property
    def modified(self) -> tuple[str, ...]:
        """Names of fields changed since load or last save, in change order."""
        return tuple(self._modified)

    @property
    def errors(self) -> dict[str, list[str]]:
        """Validation messages per field from the last validation pass."""
        return {name: list(messages) for name, messages in self._errors.items()}

    def key(self) -> dict[str, Any] | None:
        """Identity of the storage row ``{key_field: value}``, or None when unknown.

        The identity is the key value the entity was loaded or inserted with,
        not the current value of the key field.
        """
        if self._mapper is None or self._identity is None:
            return None
        return {self._mapper.key_field: self._identity}

    def key_changed(self) -> bool:
        """True when the key field no longer matches the stored identity."""
        if self._mapper is None or self._identity is None:
            return False
        return self._data.get(self._mapper.key_field) != self._identity

    # --- persistence, forwarded to the owning mapper ---

    def _owner(self, action: str) -> Repository:
        if self._mapper is None:
            raise EntityStateError("detached", action)
        return self._mapper

    def save(self, data: Mapping[str, Any] | None = None, **options: Any) -> bool:
        return self._owner("save").save(self, data, **options)

    def delete(self, **options: Any) -> bool:
        return self._owner("delete").delete(self, **options)

    def validates(self, events: Any = None, whitelist: Iterable[str] | None = None) -> bool:
        return self._owner("validate").validates(self, events=events, whitelist=whitelist)

    # --- conversion ---

    def to(self, format: Any = "dict") -> Any:  # noqa: A002
        return convert(export(self._data), format)

    # --- transitions used by the mapper ---

    def _set_errors(self, errors: Mapping[str, list[str]]) -> None:
        object.__setattr__(self, "_errors", {name: list(msgs) for name, msgs in errors.items()})

    def _mark_saved(self, written: Iterable[str]) -> None:
        for name in written:
            self._modified.pop(name, None)
        object.__setattr__(self, "_exists", True)

    def _assign_identity(self, key_field: str, value: Any) -> None:
        if value is not None and self._data.get(key_field) is None:
            self._data[key_field] = value
            self._modified.pop(key_field, None)
        object.__setattr__(self, "_identity", self._data.get(key_field))

    def _mark_deleted(self) -> None:
        object.__setattr__(self, "_exists", False)
        object.__setattr__(self, "_deleted", True)
