"""Connection configuration and management.

ConnectionConfig is a Pydantic model for type-safe connection config.
ConnectionManager uses the driver adapter protocol for pool-based
connection lifecycle.
"""

from __future__ import annotations

import importlib
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel

from row_mapper.core.exceptions import ConfigurationError, ConnectionError  # noqa: A004
from row_mapper.core.logging import get_logger

logger = get_logger(__name__)


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    pool_size: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    extra: dict[str, Any] = {}


# Adapter module mapping: driver name -> (module_path, class_name)
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    "sqlite": ("row_mapper.adapters.sqlite", "SqliteSyncAdapter"),
}


def _load_adapter(driver: str) -> Any:
    """Load a driver adapter by name."""
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise ConfigurationError(f"Unsupported database driver: {driver}")

    module_path, cls_name = _ADAPTER_MAP[driver_lower]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Failed to load adapter for '{driver}': {e}") from e


class ConnectionManager:
    """Synchronous connection manager using the SyncAdapter protocol."""

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._adapter = _load_adapter(config.driver)
        self._pool: Any = None

    @property
    def adapter(self) -> Any:
        return self._adapter

    @property
    def pool(self) -> Any:
        """The connection pool, created on first access."""
        return self.initialize_pool()

    def initialize_pool(self) -> Any:
        """Initialize the connection pool."""
        if self._pool is None:
            try:
                self._pool = self._adapter.create_pool(self.config)
            except Exception as e:
                raise ConnectionError(e) from e
            logger.debug(
                "connection_pool_created",
                driver=self.config.driver,
                pool_size=self.config.pool_size,
            )
        return self._pool

    @contextmanager
    def get_connection(self):  # type: ignore[no-untyped-def]
        """Get a connection from the pool as a context manager."""
        pool = self.initialize_pool()
        connection = self._adapter.acquire_connection(pool)
        try:
            yield connection
        finally:
            self._adapter.release_connection(connection, pool)

    def close_pool(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._adapter.close_pool(self._pool)
            self._pool = None
