"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

import json
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from marketcore.domain.model.order import (
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentStatus,
    ShippingInfo,
)
from marketcore.domain.model.value_objects import Money, Quantity
from marketcore.domain.repository.order_repository import OrderRepository


class JsonOrderRepository(OrderRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._guard = threading.RLock()
        self._ensure_file()

    # --- OrderRepository interface --------------------------------------------

    def next_id(self) -> int:
        orders = self._load_raw()
        if not orders:
            return 1
        return max(o["id"] for o in orders) + 1

    def get_by_id(self, order_id: int) -> Order | None:
        for raw in self._load_raw():
            if raw["id"] == order_id:
                return self._to_domain(raw)
        return None

    def get_by_payment_ref(self, payment_ref: str) -> Order | None:
        for raw in self._load_raw():
            if raw.get("external_payment_ref") == payment_ref:
                return self._to_domain(raw)
        return None

    def save(self, order: Order) -> None:
        with self._guard:
            orders = self._load_raw()

            if order.id is None:
                order.id = self.next_id()

            # Upsert: replace if exists, otherwise append
            for i, raw in enumerate(orders):
                if raw["id"] == order.id:
                    orders[i] = self._to_raw(order)
                    break
            else:
                orders.append(self._to_raw(order))

            self._persist_raw(orders)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        shipping_info = order.shipping_info
        return {
            "id": order.id,
            "order_number": order.order_number,
            "user_id": order.user_id,
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "external_payment_ref": order.external_payment_ref,
            "currency": order.currency,
            "subtotal": str(order.subtotal.amount),
            "discount": str(order.discount.amount),
            "tax": str(order.tax.amount),
            "shipping": str(order.shipping.amount),
            "total": str(order.total.amount),
            "coupon_code": order.coupon_code,
            "shipping_info": (
                {
                    "name": shipping_info.name,
                    "email": shipping_info.email,
                    "phone": shipping_info.phone,
                    "address": shipping_info.address,
                    "city": shipping_info.city,
                    "postal_code": shipping_info.postal_code,
                    "country": shipping_info.country,
                }
                if shipping_info is not None
                else None
            ),
            "created_at": order.created_at.isoformat(),
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity.value,
                    "unit_price": str(item.unit_price.amount),
                    "currency": item.unit_price.currency,
                }
                for item in order.items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        currency = raw.get("currency", "USD")

        def money(key: str) -> Money:
            return Money(Decimal(raw[key]), currency)

        items = [
            OrderLineItem(
                product_id=i["product_id"],
                product_name=i["product_name"],
                quantity=Quantity(i["quantity"]),
                unit_price=Money(Decimal(i["unit_price"]), i.get("currency", currency)),
            )
            for i in raw["items"]
        ]
        shipping_info = raw.get("shipping_info")
        return Order(
            id=raw["id"],
            order_number=raw["order_number"],
            user_id=raw["user_id"],
            items=items,
            subtotal=money("subtotal"),
            discount=money("discount"),
            tax=money("tax"),
            shipping=money("shipping"),
            total=money("total"),
            shipping_info=ShippingInfo(**shipping_info) if shipping_info else None,
            coupon_code=raw.get("coupon_code"),
            status=OrderStatus(raw["status"]),
            payment_status=PaymentStatus(raw["payment_status"]),
            external_payment_ref=raw.get("external_payment_ref"),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        with self._guard:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, orders: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(orders, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
