"""Shared transaction logic for the stock ledger adapters.

Subclasses only decide where committed rows live; the per-product
locking, rollback-on-error and invariant check at commit are here.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from marketcore.application.locking import KeyedLock
from marketcore.domain.exceptions import EntityNotFoundError, ValidationError
from marketcore.domain.model.stock import ProductStock
from marketcore.domain.repository.stock_ledger import StockLedger


class RowLockedStockLedger(StockLedger):

    def __init__(self, default_timeout: float | None = None) -> None:
        self._row_locks = KeyedLock(default_timeout)

    # --- StockLedger interface ------------------------------------------------

    @contextmanager
    def transaction(
        self, product_id: str, timeout: float | None = None
    ) -> Iterator[ProductStock]:
        with self._row_locks.hold(product_id, timeout):
            row = self._read_row(product_id)
            if row is None:
                raise EntityNotFoundError(f"No stock record for product '{product_id}'")
            yield row
            # Only reached when the block did not raise: commit.
            self._write_row(_validated(row))

    def get(self, product_id: str) -> ProductStock | None:
        return self._read_row(product_id)

    def list_all(self) -> list[ProductStock]:
        return self._all_rows()

    def register(self, product_id: str, stock_quantity: int) -> ProductStock:
        row = ProductStock(product_id=product_id, stock_quantity=stock_quantity)
        with self._row_locks.hold(product_id):
            if self._read_row(product_id) is not None:
                raise ValidationError(f"Stock record for '{product_id}' already exists")
            self._write_row(row)
        return ProductStock(product_id, row.stock_quantity, row.reserved_quantity)

    # --- Storage hooks --------------------------------------------------------

    @abstractmethod
    def _read_row(self, product_id: str) -> ProductStock | None:
        """Return a detached copy of the committed row."""

    @abstractmethod
    def _write_row(self, row: ProductStock) -> None:
        """Overwrite (or insert) the committed row."""

    @abstractmethod
    def _all_rows(self) -> list[ProductStock]:
        """Return detached copies of every committed row."""


def _validated(row: ProductStock) -> ProductStock:
    # Re-running __post_init__ refuses to commit a row that broke an invariant.
    return ProductStock(row.product_id, row.stock_quantity, row.reserved_quantity)
