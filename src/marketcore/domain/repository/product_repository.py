"""Port for the product catalog.

Checkout only reads it: the unit price of each cart line is snapshotted
from here into the order.  Stock counts are not kept on products; they
live in the ``StockLedger``.  The single writer is ``AddProductHandler``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.product import Product


class ProductRepository(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Catalog entry whose price checkout snapshots, or None."""

    @abstractmethod
    def get_by_name(self, name: str) -> Product | None:
        """Case-insensitive name lookup, used to refuse duplicate listings."""

    @abstractmethod
    def list_all(self) -> list[Product]:
        """All listings, for ``product list`` and the stock report."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Add a listing. Prices are not edited after checkout has used them."""
