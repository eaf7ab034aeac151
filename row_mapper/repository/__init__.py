"""Repository layer - the data mapper and its configuration."""

from __future__ import annotations

from row_mapper.repository.base import Repository
from row_mapper.repository.config import (
    DeleteOptions,
    MapperConfig,
    RemoveOptions,
    SaveOptions,
    UpdateOptions,
)

__all__ = [
    "Repository",
    "MapperConfig",
    "SaveOptions",
    "DeleteOptions",
    "UpdateOptions",
    "RemoveOptions",
]
