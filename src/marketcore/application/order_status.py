"""Order status change notification.

Callers take ``order.snapshot()`` before a transition and hand it here
with the order afterwards; a change is emitted only when the two differ.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog

from marketcore.domain.model.order import Order, OrderSnapshot, OrderStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: int
    order_number: str
    before: OrderSnapshot
    after: OrderSnapshot


StatusListener = Callable[[OrderStatusChanged], None]


def emit_status_change(
    order: Order,
    before: OrderSnapshot,
    listeners: Iterable[StatusListener],
) -> OrderStatusChanged | None:
    after = order.snapshot()
    if after == before:
        return None

    change = OrderStatusChanged(
        order_id=order.id,  # type: ignore[arg-type]
        order_number=order.order_number,
        before=before,
        after=after,
    )
    for listener in listeners:
        listener(change)
    return change


def log_status_change(change: OrderStatusChanged) -> None:
    """Default listener: record every change, warn on cancellations."""
    logger.info(
        "Order status changed",
        order_id=change.order_id,
        order_number=change.order_number,
        old_status=change.before.status.value,
        new_status=change.after.status.value,
        old_payment_status=change.before.payment_status.value,
        new_payment_status=change.after.payment_status.value,
    )
    if change.after.status == OrderStatus.CANCELLED:
        logger.warning("Order has been cancelled", order_number=change.order_number)
