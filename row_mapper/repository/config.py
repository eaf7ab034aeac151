"""Mapper configuration and per-operation option models.

MapperConfig replaces class-level model state: it is built once, passed to
the Repository constructor and frozen for the Repository's lifetime.

Option models reject unknown keys; pydantic's ValidationError is converted
to InvalidOption by ``parse_options``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from row_mapper.core.enums import LifecycleEvent
from row_mapper.core.exceptions import InvalidOption

OptionsT = TypeVar("OptionsT", bound=BaseModel)

Hook = Callable[[Any, Any], None]


class MapperConfig(BaseModel):
    """Configuration for one mapped source.

    Attributes:
        source: Table or collection name.
        key: Primary key field.
        title: Display field used by the ``list`` finder.
        finders: Extra finders, name -> Finder, query callable or defaults mapping.
        rules: Validation rules, field -> list of rule declarations.
        hooks: Lifecycle hooks, event name -> callables ``hook(entity, options)``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    source: str = Field(min_length=1)
    key: str = "id"
    title: str = "title"
    finders: dict[str, Any] = Field(default_factory=dict)
    rules: dict[str, Any] = Field(default_factory=dict)
    hooks: dict[str, list[Hook]] = Field(default_factory=dict)

    @field_validator("hooks")
    @classmethod
    def _known_hook_events(cls, hooks: dict[str, list[Hook]]) -> dict[str, list[Hook]]:
        known = {event.value for event in LifecycleEvent}
        unknown = sorted(set(hooks) - known)
        if unknown:
            raise ValueError(
                f"unknown lifecycle event(s) {unknown}; expected any of {sorted(known)}"
            )
        for event, callbacks in hooks.items():
            if not all(callable(callback) for callback in callbacks):
                raise ValueError(f"hooks for '{event}' must be callables")
        return hooks


class _Options(BaseModel):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)


class SaveOptions(_Options):
    """Options for ``Repository.save``.

    Attributes:
        validate: Run the validator before writing.
        events: Event tag(s) for validation; defaults to create/update.
        whitelist: Only these fields are validated and written this call.
        callbacks: Fire before/after save hooks.
        transaction: Caller-supplied transaction from ``Repository.transaction``.
    """

    validate_: bool = Field(default=True, alias="validate")
    events: list[str] | None = None
    whitelist: list[str] | None = None
    callbacks: bool = True
    transaction: Any = None

    @field_validator("events", mode="before")
    @classmethod
    def _event_list(cls, events: Any) -> Any:
        if isinstance(events, str):
            return [events]
        return events


class DeleteOptions(_Options):
    """Options for ``Repository.delete``."""

    callbacks: bool = True
    transaction: Any = None


class UpdateOptions(_Options):
    """Options for ``Repository.update``."""

    transaction: Any = None


class RemoveOptions(_Options):
    """Options for ``Repository.remove``.

    ``confirm_unscoped`` must be set to delete every record of the source.
    """

    confirm_unscoped: bool = False
    transaction: Any = None


def parse_options(model: type[OptionsT], options: Mapping[str, Any]) -> OptionsT:
    """Validate *options* against *model*, raising InvalidOption on failure."""
    try:
        return model.model_validate(dict(options))
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or None
        raise InvalidOption(f"{first.get('msg')} ({location})", option=location) from e
