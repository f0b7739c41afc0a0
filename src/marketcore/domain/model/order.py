"""Order aggregate, the core of the domain.

The Order is an aggregate root that owns its line items and the two
status fields driven by the payment provider.  It is pure data: inventory
effects of a transition are performed by whoever calls it (checkout or the
payment event processor) through the ReservationManager.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# The only legal order-status edges.  Staying in place is always allowed.
STATUS_EDGES: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.REFUNDED, OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})


@dataclass(frozen=True)
class OrderSnapshot:
    """The two status fields at one point in time."""

    status: OrderStatus
    payment_status: PaymentStatus


@dataclass(frozen=True)
class ShippingInfo:
    name: str
    email: str
    address: str
    city: str
    postal_code: str
    country: str
    phone: str | None = None

    def __post_init__(self) -> None:
        for attr in ("name", "email", "address", "city", "postal_code", "country"):
            value = getattr(self, attr)
            if not value or not value.strip():
                raise ValidationError(f"Shipping {attr.replace('_', ' ')} is required")


@dataclass
class OrderLineItem:
    """Captures the price snapshot of a product at checkout time."""

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # locked at checkout time

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 50


def new_order_number() -> str:
    return f"ORD-{uuid.uuid4().hex[:13].upper()}"


def subtotal_of(items: list[OrderLineItem]) -> Money:
    result = Money.zero(items[0].unit_price.currency)
    for item in items:
        result = result + item.line_total
    return result


@dataclass
class Order:
    """Aggregate root for marketplace orders.

    Use the ``Order.create()`` factory for new orders; it enforces all
    business rules and reconciles the totals.  The ``__init__`` is
    intentionally simple so the repository can reconstitute persisted
    orders without re-validating.
    """

    id: int | None
    order_number: str
    user_id: str
    items: list[OrderLineItem]
    subtotal: Money
    discount: Money
    tax: Money
    shipping: Money
    total: Money
    shipping_info: ShippingInfo | None = None
    coupon_code: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    external_payment_ref: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        user_id: str,
        items: list[OrderLineItem],
        shipping_info: ShippingInfo | None = None,
        discount: Money | None = None,
        tax_rate: Decimal = Decimal("0"),
        shipping: Money | None = None,
        coupon_code: str | None = None,
        order_number: str | None = None,
    ) -> Order:
        """Create a new order in ``(pending, pending)``, enforcing all invariants.

        ``total = subtotal + tax + shipping - discount``; the discount can
        never exceed the subtotal.
        """
        if not user_id or not str(user_id).strip():
            raise ValidationError("User id is required")

        if not items:
            raise ValidationError("Order must contain at least one item")

        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        currency = items[0].unit_price.currency
        subtotal = subtotal_of(items)

        discount = (discount or Money.zero(currency)).min(subtotal)
        shipping = shipping or Money.zero(currency)
        tax = subtotal.scaled(tax_rate)
        total = subtotal + tax + shipping - discount

        return Order(
            id=None,
            order_number=order_number or new_order_number(),
            user_id=str(user_id).strip(),
            items=list(items),
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            shipping=shipping,
            total=total,
            shipping_info=shipping_info,
            coupon_code=coupon_code,
        )

    # --- Payment reference ----------------------------------------------------

    def assign_payment_ref(self, ref: str) -> None:
        """Bind the provider's payment reference.  Set at most once."""
        if not ref:
            raise ValidationError("Payment reference is required")
        if self.external_payment_ref is not None and self.external_payment_ref != ref:
            raise ValidationError(
                f"Order {self.order_number} already has payment reference "
                f"{self.external_payment_ref}"
            )
        self.external_payment_ref = ref

    # --- State transitions ----------------------------------------------------
    #
    # Each returns True when the transition was applied and False when its
    # precondition did not hold (redundant or out-of-order event).

    def record_payment_succeeded(self) -> bool:
        """pending -> paid; status pending -> processing."""
        return self._transition(
            PaymentStatus.PENDING, PaymentStatus.PAID, OrderStatus.PROCESSING
        )

    def record_payment_failed(self) -> bool:
        """pending -> failed.  Order status is left as is."""
        return self._transition(PaymentStatus.PENDING, PaymentStatus.FAILED, None)

    def record_payment_cancelled(self) -> bool:
        """pending -> cancelled; status pending -> cancelled."""
        return self._transition(
            PaymentStatus.PENDING, PaymentStatus.CANCELLED, OrderStatus.CANCELLED
        )

    def record_refund(self) -> bool:
        """paid -> refunded; status processing -> refunded."""
        return self._transition(
            PaymentStatus.PAID, PaymentStatus.REFUNDED, OrderStatus.REFUNDED
        )

    def snapshot(self) -> OrderSnapshot:
        return OrderSnapshot(status=self.status, payment_status=self.payment_status)

    # --- Computed properties --------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def currency(self) -> str:
        return self.total.currency

    # --- Internal helpers -----------------------------------------------------

    def _transition(
        self,
        expected: PaymentStatus,
        payment_status: PaymentStatus,
        status: OrderStatus | None,
    ) -> bool:
        if self.is_terminal or self.payment_status != expected:
            return False
        if status is not None and status != self.status:
            if status not in STATUS_EDGES[self.status]:
                return False
            self.status = status
        self.payment_status = payment_status
        return True
