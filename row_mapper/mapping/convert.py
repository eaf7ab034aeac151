"""Output conversion for entities and collections.

Formats:
    "dict" / "array"  -> plain nested dicts and lists
    "json"            -> JSON text
    a class           -> instances built through ModelMapper
    a Mapper          -> mapper.map_one / mapper.map_many
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from row_mapper.core.exceptions import InvalidOption
from row_mapper.mapping.model import ModelMapper
from row_mapper.mapping.protocol import Exportable, Mapper

PLAIN_FORMATS = frozenset({"dict", "array"})


def export(value: Any) -> Any:
    """Recursively convert entities, collections and containers to plain data."""
    if isinstance(value, Exportable) and not isinstance(value, type):
        return value.to("dict")
    if isinstance(value, Mapping):
        return {key: export(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [export(item) for item in value]
    return value


def convert(data: Any, format: Any, *, many: bool = False) -> Any:  # noqa: A002
    """Render already-exported *data* in *format*."""
    if isinstance(format, str):
        name = format.lower()
        if name in PLAIN_FORMATS:
            return data
        if name == "json":
            return json.dumps(data, default=str)
        raise InvalidOption(f"unknown conversion format '{format}'", option="format")

    if isinstance(format, type):
        format = ModelMapper(format)
    if isinstance(format, Mapper):
        return format.map_many(data) if many else format.map_one(data)
    raise InvalidOption(f"unknown conversion format {format!r}", option="format")
