"""Product catalog entry.

The catalog is owned elsewhere; this core only reads name and price at
checkout time to build the price snapshot on each order line.
"""

from __future__ import annotations

from dataclasses import dataclass

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.value_objects import Money


@dataclass
class Product:

    id: str
    name: str
    price: Money
    sale_price: Money | None = None

    def __post_init__(self) -> None:
        if self.price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")

    @property
    def current_price(self) -> Money:
        """The sale price when one is set, otherwise the list price."""
        return self.sale_price if self.sale_price is not None else self.price
