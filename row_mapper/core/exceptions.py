"""RowMapper exception hierarchy.

All exceptions are RowMapper-specific. Raw driver exceptions are wrapped in
BackendError before they reach callers. Validation failures are not
exceptions: they are reported through ``Entity.errors``.
"""

from __future__ import annotations

from typing import Any


class RowMapperError(Exception):
    """Base exception for all RowMapper errors."""


# --- Options ---


class InvalidOption(RowMapperError):
    """Raised for malformed or unknown query/save options."""

    def __init__(self, detail: str, option: str | None = None) -> None:
        self.option = option
        super().__init__(f"Invalid option: {detail}")


# --- Finders ---


class UnknownFinder(RowMapperError):
    """Raised when a finder name cannot be resolved."""

    def __init__(self, finder_name: str) -> None:
        self.finder_name = finder_name
        super().__init__(f"Unknown finder: '{finder_name}'")


# --- Configuration ---


class ConfigurationError(RowMapperError):
    """Raised for invalid mapper configuration or writes to a frozen registry."""


# --- Entity ---


class EntityStateError(RowMapperError):
    """Raised when an entity is used in a state that forbids the operation."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} entity in state '{current_state}'")


# --- Mapping ---


class MappingError(RowMapperError):
    """Base for mapping errors."""


class ColumnMismatchError(MappingError):
    """Raised when entity data cannot be mapped onto a target class."""

    def __init__(self, target_class: str, missing_fields: list[str]) -> None:
        self.target_class = target_class
        self.missing_fields = missing_fields
        super().__init__(f"Cannot map to {target_class}: missing fields {missing_fields}")


# --- Backend ---


class BackendError(RowMapperError):
    """Wraps any storage failure raised by a backend."""

    def __init__(self, operation: str, detail: Any) -> None:
        self.operation = operation
        super().__init__(f"Backend {operation} failed: {detail}")


class ConnectionError(BackendError):  # noqa: A001
    """Raised on connection failures."""

    def __init__(self, detail: Any) -> None:
        super().__init__("connect", detail)


class PoolError(BackendError):
    """Raised on connection pool failures."""

    def __init__(self, detail: Any) -> None:
        super().__init__("pool", detail)


# --- Transaction ---


class TransactionError(RowMapperError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")
