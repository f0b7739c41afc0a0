"""Integration tests for webhook processing (PaymentEventProcessor)."""

import json
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from marketcore.application.checkout import CheckoutHandler
from marketcore.application.dto import CartItemSpec
from marketcore.application.payment_events import PaymentEventProcessor
from marketcore.domain.exceptions import InvalidSignatureError
from marketcore.domain.model.order import (
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentStatus,
    ShippingInfo,
)
from marketcore.domain.model.payment import PaymentEvent, PaymentRecordStatus
from marketcore.domain.model.product import Product
from marketcore.domain.model.stock import ProductStock
from marketcore.domain.model.value_objects import Money, Quantity
from marketcore.domain.service.reservation_manager import ReservationManager
from marketcore.infrastructure.payments.fake_gateway import FakeGateway
from marketcore.infrastructure.persistence.memory_stock_ledger import InMemoryStockLedger
from tests.fakes import (
    FakeOrderRepository,
    FakePaymentRepository,
    FakeProductRepository,
    FakeReservationRepository,
)

SUCCEEDED = "payment_intent.succeeded"
FAILED = "payment_intent.payment_failed"
CANCELED = "payment_intent.canceled"
REFUNDED = "charge.refunded"

SHIPPING = ShippingInfo(
    name="Ann Buyer",
    email="ann@example.com",
    address="1 Main St",
    city="Springfield",
    postal_code="12345",
    country="US",
)


def _setup(stock: int = 10, quantity: int = 2) -> SimpleNamespace:
    """A checked-out order holding ``quantity`` units of product 1."""
    ledger = InMemoryStockLedger([ProductStock("1", stock)])
    reservations = ReservationManager(ledger, FakeReservationRepository())
    order_repo = FakeOrderRepository()
    payment_repo = FakePaymentRepository()
    gateway = FakeGateway(signature="sig")
    changes = []

    checkout = CheckoutHandler(
        order_repo=order_repo,
        product_repo=FakeProductRepository([Product("1", "Widget", Money.of("50.00"))]),
        reservations=reservations,
        gateway=gateway,
        tax_rate=Decimal("0.10"),
    )
    result = checkout.handle("user-1", [CartItemSpec("1", quantity)], SHIPPING)

    processor = PaymentEventProcessor(
        order_repo=order_repo,
        payment_repo=payment_repo,
        reservations=reservations,
        gateway=gateway,
        listeners=[changes.append],
    )
    return SimpleNamespace(
        ledger=ledger,
        order_repo=order_repo,
        payment_repo=payment_repo,
        processor=processor,
        changes=changes,
        order_id=result.order.id,
        ref=result.order.payment_ref,
    )


def _event(event_type: str, ref: str | None, event_id: str | None = None, **kwargs) -> PaymentEvent:
    return PaymentEvent(
        external_event_id=event_id or f"evt_{uuid4().hex[:10]}",
        type=event_type,
        payment_ref=ref,
        **kwargs,
    )


def _row(w):
    row = w.ledger.get("1")
    return row.stock_quantity, row.reserved_quantity


class TestPaymentSucceeded:

    def test_confirms_stock_and_moves_to_processing(self):
        w = _setup()

        ack = w.processor.process(_event(SUCCEEDED, w.ref, charge_id="ch_1"))

        assert ack.status == "success"
        assert ack.http_status == 200
        assert ack.order_id == w.order_id
        order = w.order_repo.get_by_id(w.order_id)
        assert (order.status, order.payment_status) == (OrderStatus.PROCESSING, PaymentStatus.PAID)
        assert _row(w) == (8, 0)

        [payment] = w.payment_repo.list_for_order(w.order_id)
        assert payment.status == PaymentRecordStatus.SUCCEEDED
        assert payment.charge_id == "ch_1"
        assert payment.paid_at is not None
        assert payment.amount == Money.of("110.00")

    def test_redelivery_changes_stock_once(self):
        w = _setup()

        w.processor.process(_event(SUCCEEDED, w.ref))
        ack = w.processor.process(_event(SUCCEEDED, w.ref))

        assert ack.status == "duplicate"
        assert _row(w) == (8, 0)
        assert len(w.payment_repo.list_for_order(w.order_id)) == 1
        assert len(w.changes) == 1

    def test_same_event_id_short_circuits(self):
        w = _setup()

        w.processor.process(_event(SUCCEEDED, w.ref, event_id="evt_1"))
        ack = w.processor.process(_event(SUCCEEDED, w.ref, event_id="evt_1"))

        assert ack.status == "duplicate"
        assert w.payment_repo.has_processed_event("evt_1")
        assert _row(w) == (8, 0)

    def test_concurrent_redeliveries_apply_once(self):
        w = _setup()

        with ThreadPoolExecutor(max_workers=8) as pool:
            acks = list(pool.map(lambda _: w.processor.process(_event(SUCCEEDED, w.ref)), range(8)))

        assert [a.status for a in acks].count("success") == 1
        assert _row(w) == (8, 0)
        assert len(w.changes) == 1

    def test_payment_ref_lock_released_after_processing(self):
        w = _setup()

        w.processor.process(_event(SUCCEEDED, w.ref))
        w.processor.process(_event(REFUNDED, w.ref))

        assert len(w.processor._ref_locks) == 0

    def test_status_change_emitted(self):
        w = _setup()

        w.processor.process(_event(SUCCEEDED, w.ref))

        [change] = w.changes
        assert change.order_id == w.order_id
        assert change.before.status == OrderStatus.PENDING
        assert change.after.status == OrderStatus.PROCESSING
        assert change.after.payment_status == PaymentStatus.PAID


class TestPaymentFailedAndCanceled:

    def test_failed_releases_reservation(self):
        w = _setup()

        ack = w.processor.process(_event(FAILED, w.ref, failure_reason="Card declined"))

        assert ack.status == "success"
        order = w.order_repo.get_by_id(w.order_id)
        assert (order.status, order.payment_status) == (OrderStatus.PENDING, PaymentStatus.FAILED)
        assert _row(w) == (10, 0)
        [payment] = w.payment_repo.list_for_order(w.order_id)
        assert payment.status == PaymentRecordStatus.FAILED
        assert payment.failure_reason == "Card declined"

    def test_duplicate_failed_changes_nothing(self):
        w = _setup()

        w.processor.process(_event(FAILED, w.ref))
        ack = w.processor.process(_event(FAILED, w.ref))

        assert ack.status == "duplicate"
        assert _row(w) == (10, 0)
        assert len(w.payment_repo.list_for_order(w.order_id)) == 1

    def test_late_success_after_failure_ignored(self):
        w = _setup()

        w.processor.process(_event(FAILED, w.ref))
        ack = w.processor.process(_event(SUCCEEDED, w.ref))

        assert ack.status == "duplicate"
        assert _row(w) == (10, 0)
        order = w.order_repo.get_by_id(w.order_id)
        assert order.payment_status == PaymentStatus.FAILED

    def test_canceled_cancels_order_and_releases(self):
        w = _setup()

        ack = w.processor.process(_event(CANCELED, w.ref))

        assert ack.status == "success"
        order = w.order_repo.get_by_id(w.order_id)
        assert (order.status, order.payment_status) == (
            OrderStatus.CANCELLED,
            PaymentStatus.CANCELLED,
        )
        assert _row(w) == (10, 0)
        assert w.changes[-1].after.status == OrderStatus.CANCELLED


class TestRefund:

    def test_refund_returns_stock(self):
        w = _setup()
        w.processor.process(_event(SUCCEEDED, w.ref))

        ack = w.processor.process(_event(REFUNDED, w.ref, charge_id="ch_1"))

        assert ack.status == "success"
        order = w.order_repo.get_by_id(w.order_id)
        assert (order.status, order.payment_status) == (OrderStatus.REFUNDED, PaymentStatus.REFUNDED)
        assert _row(w) == (10, 0)
        [payment] = w.payment_repo.list_for_order(w.order_id)
        assert payment.status == PaymentRecordStatus.REFUNDED

    def test_refund_twice_returns_stock_once(self):
        w = _setup()
        w.processor.process(_event(SUCCEEDED, w.ref))
        w.processor.process(_event(REFUNDED, w.ref))

        ack = w.processor.process(_event(REFUNDED, w.ref))

        assert ack.status == "duplicate"
        assert _row(w) == (10, 0)

    def test_refund_before_payment_ignored(self):
        w = _setup()

        ack = w.processor.process(_event(REFUNDED, w.ref))

        assert ack.status == "duplicate"
        assert _row(w) == (10, 2)


class TestIgnoredEvents:

    def test_unknown_payment_ref(self):
        w = _setup()

        ack = w.processor.process(_event(SUCCEEDED, "pi_unknown", event_id="evt_x"))

        assert ack.status == "ignored"
        assert ack.http_status == 200
        assert not w.payment_repo.has_processed_event("evt_x")
        assert _row(w) == (10, 2)

    def test_unknown_event_type(self):
        w = _setup()

        ack = w.processor.process(_event("customer.created", w.ref))

        assert ack.status == "ignored"
        assert _row(w) == (10, 2)

    def test_missing_payment_ref(self):
        w = _setup()

        ack = w.processor.process(_event(SUCCEEDED, None))

        assert ack.status == "ignored"


class TestLineItemFallback:

    def test_order_without_records_resolves_from_items(self):
        ledger = InMemoryStockLedger([ProductStock("1", 10, 2)])
        reservations = ReservationManager(ledger, FakeReservationRepository())
        order_repo = FakeOrderRepository()
        order = Order.create(
            "user-1",
            [OrderLineItem("1", "Widget", Quantity(2), Money.of("50.00"))],
        )
        order.assign_payment_ref("pi_legacy")
        order_repo.save(order)
        processor = PaymentEventProcessor(
            order_repo, FakePaymentRepository(), reservations, FakeGateway(), listeners=[]
        )

        ack = processor.process(_event(SUCCEEDED, "pi_legacy"))

        assert ack.status == "success"
        row = ledger.get("1")
        assert (row.stock_quantity, row.reserved_quantity) == (8, 0)


class TestHandleRawPayload:

    def _payload(self, ref: str, event_type: str = SUCCEEDED) -> bytes:
        return json.dumps(
            {
                "id": "evt_raw_1",
                "type": event_type,
                "data": {"object": {"id": ref, "amount": 11000, "currency": "usd"}},
            }
        ).encode()

    def test_valid_signature_is_processed(self):
        w = _setup()

        ack = w.processor.handle(self._payload(w.ref), "sig")

        assert ack.status == "success"
        assert ack.event_id == "evt_raw_1"
        assert _row(w) == (8, 0)

    def test_invalid_signature_rejected_without_side_effects(self):
        w = _setup()

        with pytest.raises(InvalidSignatureError):
            w.processor.handle(self._payload(w.ref), "wrong")

        assert _row(w) == (10, 2)
        assert not w.payment_repo.has_processed_event("evt_raw_1")

    def test_garbage_payload_rejected(self):
        w = _setup()

        with pytest.raises(InvalidSignatureError, match="Invalid payload"):
            w.processor.handle(b"not json", "sig")
