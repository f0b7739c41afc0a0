"""Application service: Set Stock use case.

Restocking goes through the same row transaction as reservations, so it
can never drop the stock level below what is currently held.
"""

from __future__ import annotations

import structlog

from marketcore.domain.exceptions import EntityNotFoundError
from marketcore.domain.model.stock import ProductStock
from marketcore.domain.repository.product_repository import ProductRepository
from marketcore.domain.repository.stock_ledger import StockLedger

logger = structlog.get_logger(__name__)


class SetStockHandler:

    def __init__(
        self,
        ledger: StockLedger,
        product_repo: ProductRepository,
        lock_timeout: float | None = None,
    ) -> None:
        self._ledger = ledger
        self._product_repo = product_repo
        self._lock_timeout = lock_timeout

    def handle(self, product_id: str, quantity: int) -> ProductStock:
        """Set the on-hand stock level for a catalog product."""
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")

        if self._ledger.get(product_id) is None:
            row = self._ledger.register(product_id, quantity)
            logger.info("Stock record created", product_id=product_id, stock=quantity)
            return row

        with self._ledger.transaction(product_id, self._lock_timeout) as row:
            previous = row.stock_quantity
            row.set_stock(quantity)

        logger.info(
            "Stock level set",
            product_id=product_id,
            previous=previous,
            stock=quantity,
            reserved=row.reserved_quantity,
        )
        return ProductStock(row.product_id, row.stock_quantity, row.reserved_quantity)
