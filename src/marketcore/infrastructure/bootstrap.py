"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.

The JSON stores and the lock maps are process-wide: every handler built
for the same data directory gets the same instances, so the row locks,
file guards and payment-reference locks are shared between checkout and
webhook processing.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from marketcore.application.checkout import CheckoutHandler
from marketcore.application.locking import KeyedLock
from marketcore.application.payment_events import PaymentEventProcessor
from marketcore.domain.port.coupon_policy import CouponPolicy
from marketcore.domain.port.payment_gateway import PaymentGateway
from marketcore.domain.repository.stock_ledger import StockLedger
from marketcore.domain.service.reservation_manager import ReservationManager
from marketcore.infrastructure.config import Settings
from marketcore.infrastructure.coupons import JsonCouponPolicy
from marketcore.infrastructure.payments.fake_gateway import FakeGateway
from marketcore.infrastructure.payments.stripe_gateway import StripeGateway
from marketcore.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from marketcore.infrastructure.persistence.json_payment_repository import (
    JsonPaymentRepository,
)
from marketcore.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from marketcore.infrastructure.persistence.json_reservation_repository import (
    JsonReservationRepository,
)
from marketcore.infrastructure.persistence.json_stock_ledger import JsonStockLedger

T = TypeVar("T")

_shared: dict[tuple[str, Path], object] = {}
_shared_guard = threading.Lock()


def _shared_instance(kind: str, path: Path, build: Callable[[], T]) -> T:
    """Return the one ``kind`` instance for ``path``, building it on first use."""
    key = (kind, path.resolve())
    with _shared_guard:
        instance = _shared.get(key)
        if instance is None:
            instance = _shared[key] = build()
        return instance  # type: ignore[return-value]


def product_repository(settings: Settings) -> JsonProductRepository:
    path = settings.data_dir / "products.json"
    return _shared_instance("products", path, lambda: JsonProductRepository(path))


def order_repository(settings: Settings) -> JsonOrderRepository:
    path = settings.data_dir / "orders.json"
    return _shared_instance("orders", path, lambda: JsonOrderRepository(path))


def payment_repository(settings: Settings) -> JsonPaymentRepository:
    path = settings.data_dir / "payments.json"
    return _shared_instance("payments", path, lambda: JsonPaymentRepository(path))


def reservation_repository(settings: Settings) -> JsonReservationRepository:
    path = settings.data_dir / "reservations.json"
    return _shared_instance("reservations", path, lambda: JsonReservationRepository(path))


def stock_ledger(settings: Settings) -> JsonStockLedger:
    path = settings.data_dir / "stock.json"
    return _shared_instance(
        "stock", path, lambda: JsonStockLedger(path, settings.lock_timeout)
    )


def payment_ref_locks(settings: Settings) -> KeyedLock:
    return _shared_instance(
        "payment-refs", settings.data_dir, lambda: KeyedLock(settings.lock_timeout)
    )


def coupon_policy(settings: Settings) -> CouponPolicy:
    return JsonCouponPolicy(settings.data_dir / "coupons.json")


def reservation_manager(
    settings: Settings, ledger: StockLedger | None = None
) -> ReservationManager:
    return ReservationManager(
        ledger=ledger or stock_ledger(settings),
        reservation_repo=reservation_repository(settings),
        lock_timeout=settings.lock_timeout,
        max_attempts=settings.lock_retries,
    )


def payment_gateway(settings: Settings) -> PaymentGateway:
    if settings.payment_gateway == "stripe":
        return StripeGateway(
            api_key=settings.stripe_secret_key,  # type: ignore[arg-type]
            webhook_secret=settings.stripe_webhook_secret,  # type: ignore[arg-type]
        )
    return FakeGateway(signature=settings.fake_signature)


def checkout_handler(settings: Settings) -> CheckoutHandler:
    return CheckoutHandler(
        order_repo=order_repository(settings),
        product_repo=product_repository(settings),
        reservations=reservation_manager(settings),
        gateway=payment_gateway(settings),
        coupon_policy=coupon_policy(settings),
        tax_rate=settings.tax_rate,
    )


def payment_event_processor(settings: Settings) -> PaymentEventProcessor:
    return PaymentEventProcessor(
        order_repo=order_repository(settings),
        payment_repo=payment_repository(settings),
        reservations=reservation_manager(settings),
        gateway=payment_gateway(settings),
        ref_locks=payment_ref_locks(settings),
        lock_timeout=settings.lock_timeout,
    )
