"""Abstract StockLedger: durable stock rows with lock-scoped transactions.

Defined in the domain layer so the ReservationManager never depends on
infrastructure.  Adapters (in-memory, JSON file) live in
``marketcore.infrastructure.persistence``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from marketcore.domain.model.stock import ProductStock


class StockLedger(ABC):

    @abstractmethod
    def transaction(
        self, product_id: str, timeout: float | None = None
    ) -> AbstractContextManager[ProductStock]:
        """Lock one product row and yield it for mutation.

        The row is written back when the block exits normally and discarded
        when it raises.  Raises EntityNotFoundError for an unknown product
        and LockTimeoutError if the lock is not acquired within ``timeout``
        seconds.  Different products never block each other.
        """

    @abstractmethod
    def get(self, product_id: str) -> ProductStock | None:
        """Return a detached copy of the committed row, or None."""

    @abstractmethod
    def list_all(self) -> list[ProductStock]:
        """Return detached copies of every committed row."""

    @abstractmethod
    def register(self, product_id: str, stock_quantity: int) -> ProductStock:
        """Create the row for a new product with nothing reserved."""
