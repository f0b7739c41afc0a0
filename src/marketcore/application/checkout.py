"""Application service: Checkout use case.

Turns a cart into a pending order:

1. Resolve each cart line against the catalog (price snapshot).
2. Reserve every line under one order number.  If any reservation fails,
   everything already reserved for this attempt is released first.
3. Price the order (coupon discount, tax, shipping).
4. Open a payment intent with the provider.  This network call happens
   after all stock locks have been released.
5. Bind the payment reference and persist the order as (pending, pending).

Any failure after step 2 releases the attempt's reservations before the
error reaches the caller, so reserved stock never outlives a failed
checkout.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from marketcore.application.dto import CartItemSpec, CheckoutResult, to_order_dto
from marketcore.domain.exceptions import (
    EmptyCartError,
    EntityNotFoundError,
    InsufficientStockError,
    InvalidCouponError,
    OutOfStockError,
)
from marketcore.domain.model.order import (
    Order,
    OrderLineItem,
    ShippingInfo,
    new_order_number,
    subtotal_of,
)
from marketcore.domain.model.value_objects import Money, Quantity
from marketcore.domain.port.coupon_policy import CouponPolicy
from marketcore.domain.port.payment_gateway import PaymentGateway
from marketcore.domain.repository.order_repository import OrderRepository
from marketcore.domain.repository.product_repository import ProductRepository
from marketcore.domain.service.reservation_manager import ReservationManager

logger = structlog.get_logger(__name__)


class CheckoutHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        reservations: ReservationManager,
        gateway: PaymentGateway,
        coupon_policy: CouponPolicy | None = None,
        tax_rate: Decimal = Decimal("0.10"),
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._reservations = reservations
        self._gateway = gateway
        self._coupon_policy = coupon_policy
        self._tax_rate = tax_rate

    def handle(
        self,
        user_id: str,
        cart_items: list[CartItemSpec],
        shipping_info: ShippingInfo,
        coupon_code: str | None = None,
    ) -> CheckoutResult:
        if not cart_items:
            raise EmptyCartError("Cart is empty")

        line_items = self._build_line_items(cart_items)
        order_number = new_order_number()

        self._reserve_all(order_number, line_items)

        try:
            discount = self._discount(coupon_code, subtotal_of(line_items), user_id)
            order = Order.create(
                user_id=user_id,
                items=line_items,
                shipping_info=shipping_info,
                discount=discount,
                tax_rate=self._tax_rate,
                coupon_code=coupon_code,
                order_number=order_number,
            )
            intent = self._gateway.create_payment_intent(
                order.total,
                metadata={"order_number": order.order_number, "user_id": order.user_id},
            )
            order.assign_payment_ref(intent.ref)
            self._order_repo.save(order)
        except Exception:
            released = self._reservations.release_for_order(order_number)
            logger.warning(
                "Checkout failed after reservation, stock released",
                order_number=order_number,
                reservations_released=released,
            )
            raise

        logger.info(
            "Checkout completed",
            order_id=order.id,
            order_number=order.order_number,
            payment_ref=order.external_payment_ref,
            total=str(order.total),
        )
        return CheckoutResult(order=to_order_dto(order), client_secret=intent.client_secret)

    # --- Steps ----------------------------------------------------------------

    def _build_line_items(self, cart_items: list[CartItemSpec]) -> list[OrderLineItem]:
        line_items: list[OrderLineItem] = []
        for spec in cart_items:
            product = self._product_repo.get_by_id(spec.product_id)
            if product is None:
                raise EntityNotFoundError(f"Product not found: '{spec.product_id}'")
            line_items.append(
                OrderLineItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=Quantity(spec.quantity),
                    unit_price=product.current_price,  # <-- price snapshot
                )
            )
        return line_items

    def _reserve_all(self, order_number: str, line_items: list[OrderLineItem]) -> None:
        """Reserve every line or none of them."""
        for item in line_items:
            try:
                self._reservations.reserve(
                    item.product_id, item.quantity.value, order_ref=order_number
                )
            except Exception as exc:
                self._reservations.release_for_order(order_number)
                logger.info(
                    "Checkout reservation failed, partial holds released",
                    order_number=order_number,
                    product_id=item.product_id,
                    error=str(exc),
                )
                if isinstance(exc, InsufficientStockError):
                    raise OutOfStockError(
                        item.product_name, exc.requested, exc.available
                    ) from exc
                raise

    def _discount(self, coupon_code: str | None, subtotal: Money, user_id: str) -> Money | None:
        if not coupon_code:
            return None
        if self._coupon_policy is None:
            raise InvalidCouponError(f"Invalid or expired coupon code: {coupon_code}")
        return self._coupon_policy.discount(coupon_code, subtotal, user_id)
