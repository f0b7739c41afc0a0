"""Application service: payment provider webhook processing.

The provider delivers notifications at least once and in no particular
order.  Processing is idempotent on two levels:

- the order's own preconditions (``payment_status`` must be ``pending``
  for success/failure/cancel and ``paid`` for a refund), which is what
  makes a redelivered or stale event a no-op;
- a ledger of applied ``external_event_id`` values, checked first so an
  exact redelivery never even loads the order.

Events for the same payment reference are serialized; events for
different references run in parallel.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from marketcore.application.locking import KeyedLock
from marketcore.application.order_status import (
    StatusListener,
    emit_status_change,
    log_status_change,
)
from marketcore.domain.exceptions import InvalidSignatureError
from marketcore.domain.model.order import Order
from marketcore.domain.model.payment import (
    Payment,
    PaymentEvent,
    PaymentEventType,
    PaymentRecordStatus,
)
from marketcore.domain.port.payment_gateway import PaymentGateway
from marketcore.domain.repository.order_repository import OrderRepository
from marketcore.domain.repository.payment_repository import PaymentRepository
from marketcore.domain.service.reservation_manager import ReservationManager

logger = structlog.get_logger(__name__)

# HTTP status a webhook endpoint answers with when verification fails.
INVALID_SIGNATURE_HTTP_STATUS = 400

ACK_SUCCESS = "success"
ACK_DUPLICATE = "duplicate"
ACK_IGNORED = "ignored"


@dataclass(frozen=True)
class Ack:
    """Acknowledgement returned to the provider.  Always HTTP 200."""

    status: str
    event_id: str
    order_id: int | None = None
    http_status: int = 200


class PaymentEventProcessor:

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        reservations: ReservationManager,
        gateway: PaymentGateway,
        listeners: Iterable[StatusListener] = (log_status_change,),
        ref_locks: KeyedLock | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._reservations = reservations
        self._gateway = gateway
        self._listeners = list(listeners)
        self._ref_locks = ref_locks if ref_locks is not None else KeyedLock()
        self._lock_timeout = lock_timeout

    def handle(self, raw_payload: bytes | str, signature: str) -> Ack:
        """Verify a raw webhook delivery and process it.

        Raises InvalidSignatureError (answer HTTP 400) without touching any
        state when the payload is not authentic or cannot be decoded.
        """
        try:
            event = self._gateway.verify_webhook(raw_payload, signature)
        except InvalidSignatureError as exc:
            logger.error("Payment webhook rejected", error=str(exc))
            raise

        logger.info(
            "Payment webhook received",
            event_id=event.external_event_id,
            event_type=event.type,
        )
        return self.process(event)

    def process(self, event: PaymentEvent) -> Ack:
        event_type = event.event_type
        if event_type is None:
            logger.info(
                "Unhandled payment event type",
                event_id=event.external_event_id,
                event_type=event.type,
            )
            return Ack(ACK_IGNORED, event.external_event_id)

        if not event.payment_ref:
            logger.warning(
                "Payment event without payment reference",
                event_id=event.external_event_id,
                event_type=event.type,
            )
            return Ack(ACK_IGNORED, event.external_event_id)

        with self._ref_locks.hold(event.payment_ref, self._lock_timeout):
            return self._process_locked(event, event_type)

    # --- Internal helpers -----------------------------------------------------

    def _process_locked(self, event: PaymentEvent, event_type: PaymentEventType) -> Ack:
        log = logger.bind(
            event_id=event.external_event_id,
            event_type=event.type,
            payment_ref=event.payment_ref,
        )

        if self._payment_repo.has_processed_event(event.external_event_id):
            log.info("Payment event already processed")
            return Ack(ACK_DUPLICATE, event.external_event_id)

        order = self._order_repo.get_by_payment_ref(event.payment_ref)  # type: ignore[arg-type]
        if order is None:
            log.warning("Payment event for unknown order")
            return Ack(ACK_IGNORED, event.external_event_id)

        log = log.bind(order_id=order.id, order_number=order.order_number)
        before = order.snapshot()

        if not self._apply(event_type, order, event):
            log.info(
                "Payment event ignored, order not in expected state",
                status=order.status.value,
                payment_status=order.payment_status.value,
            )
            return Ack(ACK_DUPLICATE, event.external_event_id, order.id)

        self._order_repo.save(order)
        self._payment_repo.record_processed_event(event.external_event_id)
        emit_status_change(order, before, self._listeners)

        log.info(
            "Payment event applied",
            status=order.status.value,
            payment_status=order.payment_status.value,
        )
        return Ack(ACK_SUCCESS, event.external_event_id, order.id)

    def _apply(self, event_type: PaymentEventType, order: Order, event: PaymentEvent) -> bool:
        """Run one row of the transition table.  False if its precondition failed."""
        if event_type == PaymentEventType.PAYMENT_SUCCEEDED:
            if not order.record_payment_succeeded():
                return False
            self._resolve_stock(
                order, self._reservations.confirm_for_order, self._reservations.confirm
            )
            self._record_payment(
                order,
                event,
                PaymentRecordStatus.SUCCEEDED,
                paid_at=datetime.now(timezone.utc),
            )
            return True

        if event_type == PaymentEventType.PAYMENT_FAILED:
            if not order.record_payment_failed():
                return False
            self._resolve_stock(
                order, self._reservations.release_for_order, self._reservations.release
            )
            self._record_payment(
                order,
                event,
                PaymentRecordStatus.FAILED,
                failure_reason=event.failure_reason or "Unknown error",
            )
            return True

        if event_type == PaymentEventType.PAYMENT_CANCELED:
            if not order.record_payment_cancelled():
                return False
            self._resolve_stock(
                order, self._reservations.release_for_order, self._reservations.release
            )
            return True

        if event_type == PaymentEventType.CHARGE_REFUNDED:
            if not order.record_refund():
                return False
            self._resolve_stock(
                order, self._reservations.cancel_for_order, self._reservations.cancel
            )
            self._mark_refunded(order, event)
            return True

        return False

    def _resolve_stock(
        self,
        order: Order,
        by_records: Callable[[str], int],
        per_item: Callable[[str, int], object],
    ) -> None:
        """Apply a stock effect through the order's reservation records.

        Orders without any records (taken before records existed, or
        imported) fall back to their line items.
        """
        if self._reservations.reservations_for(order.order_number):
            by_records(order.order_number)
            return

        logger.warning(
            "Order has no reservation records, resolving from line items",
            order_number=order.order_number,
        )
        for item in order.items:
            per_item(item.product_id, item.quantity.value)

    def _record_payment(
        self,
        order: Order,
        event: PaymentEvent,
        status: PaymentRecordStatus,
        paid_at: datetime | None = None,
        failure_reason: str | None = None,
    ) -> None:
        self._payment_repo.save(
            Payment(
                id=None,
                order_id=order.id,  # type: ignore[arg-type]
                payment_ref=order.external_payment_ref,  # type: ignore[arg-type]
                amount=event.amount or order.total,
                status=status,
                charge_id=event.charge_id,
                failure_reason=failure_reason,
                paid_at=paid_at,
            )
        )

    def _mark_refunded(self, order: Order, event: PaymentEvent) -> None:
        for payment in self._payment_repo.list_for_order(order.id):  # type: ignore[arg-type]
            if payment.status == PaymentRecordStatus.SUCCEEDED:
                payment.status = PaymentRecordStatus.REFUNDED
                self._payment_repo.save(payment)
                return
        self._record_payment(order, event, PaymentRecordStatus.REFUNDED)
