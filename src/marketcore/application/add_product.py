"""Application service: Add Product use case."""

from __future__ import annotations

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.product import Product
from marketcore.domain.model.value_objects import Money
from marketcore.domain.repository.product_repository import ProductRepository


class AddProductHandler:

    def __init__(self, product_repo: ProductRepository, currency: str = "USD") -> None:
        self._product_repo = product_repo
        self._currency = currency

    def handle(self, name: str, price: str, sale_price: str | None = None) -> Product:
        """Add a new product to the catalog with the next numeric id."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")

        if self._product_repo.get_by_name(name.strip()) is not None:
            raise ValidationError(f"Product '{name.strip()}' already exists")

        ids = [int(p.id) for p in self._product_repo.list_all() if p.id.isdigit()]
        next_id = str(max(ids) + 1) if ids else "1"

        product = Product(
            id=next_id,
            name=name.strip(),
            price=Money.of(price, self._currency),
            sale_price=Money.of(sale_price, self._currency) if sale_price else None,
        )
        self._product_repo.save(product)
        return product
