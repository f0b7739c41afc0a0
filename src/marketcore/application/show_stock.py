"""Application service: Show Stock use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from marketcore.domain.repository.product_repository import ProductRepository
from marketcore.domain.repository.stock_ledger import StockLedger


@dataclass(frozen=True)
class StockLineDTO:
    product_id: str
    product_name: str
    stock: int
    reserved: int
    available: int


class ShowStockHandler:

    def __init__(self, ledger: StockLedger, product_repo: ProductRepository) -> None:
        self._ledger = ledger
        self._product_repo = product_repo

    def handle(self) -> list[StockLineDTO]:
        lines = []
        for row in self._ledger.list_all():
            product = self._product_repo.get_by_id(row.product_id)
            lines.append(
                StockLineDTO(
                    product_id=row.product_id,
                    # Rows can outlive their catalog entry.
                    product_name=product.name if product else "?",
                    stock=row.stock_quantity,
                    reserved=row.reserved_quantity,
                    available=row.available_quantity,
                )
            )
        return lines
