"""In-process StockLedger.

Rows live in a dict of ``(stock, reserved)`` tuples; the mutex per product
id stands in for a database row lock.
"""

from __future__ import annotations

import threading

from marketcore.domain.model.stock import ProductStock
from marketcore.infrastructure.persistence.row_locked_ledger import RowLockedStockLedger


class InMemoryStockLedger(RowLockedStockLedger):

    def __init__(
        self,
        rows: list[ProductStock] | None = None,
        default_timeout: float | None = None,
    ) -> None:
        super().__init__(default_timeout)
        self._guard = threading.Lock()
        self._rows: dict[str, tuple[int, int]] = {
            row.product_id: (row.stock_quantity, row.reserved_quantity)
            for row in rows or []
        }

    def _read_row(self, product_id: str) -> ProductStock | None:
        with self._guard:
            committed = self._rows.get(product_id)
        if committed is None:
            return None
        return ProductStock(product_id, *committed)

    def _write_row(self, row: ProductStock) -> None:
        with self._guard:
            self._rows[row.product_id] = (row.stock_quantity, row.reserved_quantity)

    def _all_rows(self) -> list[ProductStock]:
        with self._guard:
            committed = dict(self._rows)
        return [ProductStock(pid, *pair) for pid, pair in committed.items()]
