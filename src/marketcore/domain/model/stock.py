"""ProductStock: the durable stock row for one product.

Holds the ``(stock_quantity, reserved_quantity)`` pair.  The methods here
are the raw arithmetic; they must only ever be called on a row obtained
from ``StockLedger.transaction()``, which provides the per-product lock.
"""

from __future__ import annotations

from dataclasses import dataclass

from marketcore.domain.exceptions import InsufficientStockError, ValidationError


@dataclass
class ProductStock:
    """Stock accounting for a single product.

    Invariants:
    - ``0 <= reserved_quantity <= stock_quantity``
    - ``available_quantity`` is derived, never stored
    """

    product_id: str
    stock_quantity: int
    reserved_quantity: int = 0

    def __post_init__(self) -> None:
        if self.stock_quantity < 0 or self.reserved_quantity < 0:
            raise ValidationError("Stock quantities cannot be negative")
        if self.reserved_quantity > self.stock_quantity:
            raise ValidationError(
                f"Reserved quantity {self.reserved_quantity} exceeds stock "
                f"{self.stock_quantity} for product '{self.product_id}'"
            )

    @property
    def available_quantity(self) -> int:
        return self.stock_quantity - self.reserved_quantity

    def reserve(self, quantity: int) -> None:
        """Hold ``quantity`` units. Raises InsufficientStockError if not available."""
        _require_positive(quantity)
        if quantity > self.available_quantity:
            raise InsufficientStockError(
                self.product_id, quantity, self.available_quantity
            )
        self.reserved_quantity += quantity

    def release(self, quantity: int) -> int:
        """Drop up to ``quantity`` units of reservation; returns the amount released."""
        _require_positive(quantity)
        released = min(quantity, self.reserved_quantity)
        self.reserved_quantity -= released
        return released

    def confirm(self, quantity: int) -> int:
        """Turn a reservation into a sale.

        Clamp-releases ``quantity`` from the reservation and deducts it from
        stock.  Stock never drops below zero.  Returns the amount of
        reservation that was actually released.
        """
        _require_positive(quantity)
        released = min(quantity, self.reserved_quantity)
        self.reserved_quantity -= released
        self.stock_quantity = max(0, self.stock_quantity - quantity)
        return released

    def cancel(self, quantity: int) -> None:
        """Return previously sold units to stock (refund)."""
        _require_positive(quantity)
        self.stock_quantity += quantity

    def set_stock(self, quantity: int) -> None:
        """Overwrite the physical count (restock / stock take)."""
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")
        if quantity < self.reserved_quantity:
            raise ValidationError(
                f"Cannot set stock of '{self.product_id}' to {quantity} "
                f"while {self.reserved_quantity} units are reserved"
            )
        self.stock_quantity = quantity


def _require_positive(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")
