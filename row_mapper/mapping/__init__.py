"""Mapping layer - entities, collections and conversion to typed objects."""

from __future__ import annotations

from row_mapper.mapping.collection import Collection
from row_mapper.mapping.entity import Entity
from row_mapper.mapping.model import ModelMapper
from row_mapper.mapping.protocol import Exportable, Mapper

__all__ = [
    "Entity",
    "Collection",
    "ModelMapper",
    "Mapper",
    "Exportable",
]
