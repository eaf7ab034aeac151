"""Transaction management.

Provides a context manager for executing multiple statements atomically on
one pooled connection. Auto-commits on success, auto-rolls-back on exception.
Pass the manager to mapper write operations through the ``transaction``
option.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from row_mapper.core.exceptions import TransactionStateError
from row_mapper.core.logging import get_logger

logger = get_logger(__name__)


class _TxState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionManager:
    """Synchronous transaction context manager.

    The connection is acquired from the pool on ``__enter__`` and released
    on ``__exit__``.
    """

    def __init__(self, connection_manager: Any) -> None:
        self._connection_manager = connection_manager
        self._adapter = connection_manager.adapter
        self._connection: Any = None
        self._pool: Any = None
        self._state = _TxState.IDLE

    def __enter__(self) -> TransactionManager:
        self._pool = self._connection_manager.initialize_pool()
        self._connection = self._adapter.acquire_connection(self._pool)
        self._state = _TxState.ACTIVE
        logger.debug("transaction_started")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if self._state == _TxState.ACTIVE:
                if exc_type is not None:
                    self._connection.rollback()
                    self._state = _TxState.ROLLED_BACK
                    logger.info("transaction_rolled_back", error=str(exc_val))
                else:
                    self._connection.commit()
                    self._state = _TxState.COMMITTED
                    logger.debug("transaction_committed")
        finally:
            self._adapter.release_connection(self._connection, self._pool)

    @property
    def state(self) -> str:
        return self._state.value

    @property
    def active(self) -> bool:
        return self._state == _TxState.ACTIVE

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> Any:
        """Execute a statement within this transaction and return the cursor."""
        self._check_active()
        return self._adapter.execute(self._connection, sql, params)

    def commit(self) -> None:
        """Explicitly commit the transaction."""
        if self._state == _TxState.IDLE:
            raise TransactionStateError("idle", "commit")
        if self._state == _TxState.ROLLED_BACK:
            raise TransactionStateError("rolled_back", "commit")
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "commit")
        self._connection.commit()
        self._state = _TxState.COMMITTED

    def rollback(self) -> None:
        """Explicitly rollback the transaction."""
        if self._state == _TxState.IDLE:
            raise TransactionStateError("idle", "rollback")
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "rollback")
        self._connection.rollback()
        self._state = _TxState.ROLLED_BACK

    def _check_active(self) -> None:
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "execute")
