"""RowMapper - data mapper with pluggable finders and validated persistence."""

from __future__ import annotations

from row_mapper.adapters.protocol import StorageBackend, SyncAdapter
from row_mapper.backends.memory import MemoryBackend
from row_mapper.backends.sql import SqlBackend
from row_mapper.core.connection import ConnectionConfig, ConnectionManager
from row_mapper.core.enums import Aggregate, LifecycleEvent, SortDirection
from row_mapper.core.exceptions import (
    BackendError,
    ColumnMismatchError,
    ConfigurationError,
    ConnectionError,  # noqa: A004
    EntityStateError,
    InvalidOption,
    MappingError,
    PoolError,
    RowMapperError,
    TransactionError,
    TransactionStateError,
    UnknownFinder,
)
from row_mapper.core.finders import Finder, FinderRegistry, SourceMeta, parse_dynamic_finder
from row_mapper.core.logging import configure_logging, get_logger
from row_mapper.core.query import QueryDescriptor
from row_mapper.core.transaction import TransactionManager
from row_mapper.core.validation import Rule, Validator
from row_mapper.mapping.collection import Collection
from row_mapper.mapping.entity import Entity
from row_mapper.mapping.model import ModelMapper
from row_mapper.repository.base import Repository
from row_mapper.repository.config import MapperConfig

__all__ = [
    # Repository
    "Repository",
    "MapperConfig",
    # Entities
    "Entity",
    "Collection",
    "ModelMapper",
    # Query
    "QueryDescriptor",
    "SortDirection",
    "Aggregate",
    # Finders
    "Finder",
    "FinderRegistry",
    "SourceMeta",
    "parse_dynamic_finder",
    # Validation
    "Rule",
    "Validator",
    "LifecycleEvent",
    # Backends
    "StorageBackend",
    "SyncAdapter",
    "SqlBackend",
    "MemoryBackend",
    "ConnectionConfig",
    "ConnectionManager",
    "TransactionManager",
    # Logging
    "configure_logging",
    "get_logger",
    # Exceptions
    "RowMapperError",
    "InvalidOption",
    "UnknownFinder",
    "ConfigurationError",
    "EntityStateError",
    "MappingError",
    "ColumnMismatchError",
    "BackendError",
    "ConnectionError",
    "PoolError",
    "TransactionError",
    "TransactionStateError",
]
