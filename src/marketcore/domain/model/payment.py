"""Payment-side data: provider events, payment intents, payment records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from marketcore.domain.model.value_objects import Money


class PaymentEventType(Enum):
    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_FAILED = "payment_intent.payment_failed"
    PAYMENT_CANCELED = "payment_intent.canceled"
    CHARGE_REFUNDED = "charge.refunded"

    @classmethod
    def parse(cls, raw: str) -> PaymentEventType | None:
        """Return the matching member, or None for types this core ignores."""
        try:
            return cls(raw)
        except ValueError:
            return None


@dataclass(frozen=True)
class PaymentEvent:
    """One notification from the payment provider.

    Delivery is at-least-once and unordered: the same ``external_event_id``
    may arrive repeatedly, and events for one ``payment_ref`` may arrive out
    of order.  ``type`` is kept as the provider's raw string so unknown
    types can still be acknowledged.
    """

    external_event_id: str
    type: str
    payment_ref: str | None
    amount: Money | None = None
    charge_id: str | None = None
    failure_reason: str | None = None

    @property
    def event_type(self) -> PaymentEventType | None:
        return PaymentEventType.parse(self.type)


@dataclass(frozen=True)
class PaymentIntent:
    """What the provider hands back when checkout opens a payment."""

    ref: str
    client_secret: str


class PaymentRecordStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


@dataclass
class Payment:
    """Audit record of a payment outcome applied to an order."""

    id: int | None
    order_id: int
    payment_ref: str
    amount: Money
    status: PaymentRecordStatus
    charge_id: str | None = None
    failure_reason: str | None = None
    paid_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
