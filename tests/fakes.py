"""In-memory fake repositories and ports for testing.

These implement the same abstract interfaces as the JSON repositories
but keep everything in a dict. No file I/O, no side effects.  Like the
JSON repositories they hand out copies, so an unsaved change never leaks
into the store.
"""

from __future__ import annotations

import copy
import threading

from marketcore.domain.exceptions import InvalidCouponError
from marketcore.domain.model.order import Order
from marketcore.domain.model.payment import Payment
from marketcore.domain.model.product import Product
from marketcore.domain.model.reservation import Reservation
from marketcore.domain.model.value_objects import Money
from marketcore.domain.port.coupon_policy import CouponPolicy
from marketcore.domain.repository.order_repository import OrderRepository
from marketcore.domain.repository.payment_repository import PaymentRepository
from marketcore.domain.repository.product_repository import ProductRepository
from marketcore.domain.repository.reservation_repository import ReservationRepository


class FakeOrderRepository(OrderRepository):

    def __init__(self) -> None:
        self._store: dict[int, Order] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def next_id(self) -> int:
        return self._next_id

    def get_by_id(self, order_id: int) -> Order | None:
        order = self._store.get(order_id)
        return copy.deepcopy(order) if order else None

    def get_by_payment_ref(self, payment_ref: str) -> Order | None:
        for order in list(self._store.values()):
            if order.external_payment_ref == payment_ref:
                return copy.deepcopy(order)
        return None

    def save(self, order: Order) -> None:
        with self._lock:
            if order.id is None:
                order.id = self._next_id
                self._next_id += 1
            self._store[order.id] = copy.deepcopy(order)

    def all(self) -> list[Order]:
        return [copy.deepcopy(o) for o in self._store.values()]


class FakeProductRepository(ProductRepository):

    def __init__(self, products: list[Product] | None = None) -> None:
        self._store: dict[str, Product] = {}
        for p in products or []:
            self._store[p.id] = p

    def get_by_id(self, product_id: str) -> Product | None:
        return self._store.get(product_id)

    def get_by_name(self, name: str) -> Product | None:
        for p in self._store.values():
            if p.name.lower() == name.lower():
                return p
        return None

    def list_all(self) -> list[Product]:
        return list(self._store.values())

    def save(self, product: Product) -> None:
        self._store[product.id] = product


class FakeReservationRepository(ReservationRepository):

    def __init__(self) -> None:
        self._store: dict[str, Reservation] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            self._counter += 1
            return f"res_{self._counter}"

    def get(self, reservation_id: str) -> Reservation | None:
        reservation = self._store.get(reservation_id)
        return copy.copy(reservation) if reservation else None

    def list_for_order(self, order_ref: str) -> list[Reservation]:
        return [
            copy.copy(r) for r in list(self._store.values()) if r.order_ref == order_ref
        ]

    def save(self, reservation: Reservation) -> None:
        with self._lock:
            self._store[reservation.id] = copy.copy(reservation)


class FakePaymentRepository(PaymentRepository):

    def __init__(self) -> None:
        self._store: dict[int, Payment] = {}
        self._processed: set[str] = set()
        self._next_id = 1

    def save(self, payment: Payment) -> None:
        if payment.id is None:
            payment.id = self._next_id
            self._next_id += 1
        self._store[payment.id] = copy.copy(payment)

    def list_for_order(self, order_id: int) -> list[Payment]:
        return [copy.copy(p) for p in self._store.values() if p.order_id == order_id]

    def has_processed_event(self, event_id: str) -> bool:
        return event_id in self._processed

    def record_processed_event(self, event_id: str) -> None:
        self._processed.add(event_id)


class FakeCouponPolicy(CouponPolicy):
    """Fixed discount per known code."""

    def __init__(self, codes: dict[str, str] | None = None) -> None:
        self._codes = codes or {}

    def discount(self, code: str, subtotal: Money, user_id: str) -> Money:
        if code not in self._codes:
            raise InvalidCouponError(f"Invalid or expired coupon code: {code}")
        return Money.of(self._codes[code], subtotal.currency)
