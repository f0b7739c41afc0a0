"""Domain service: ReservationManager.

Every operation is one short unit of work on a single product row:
lock -> read -> validate -> write -> commit (or roll back on error).
Operations on different products never block each other; operations on
the same product serialize on the ledger's row lock, so concurrent
reservations can never oversell.

A lock that cannot be acquired in time is retried a bounded number of
times with exponential backoff before ``LockTimeoutError`` reaches the
caller.

The ``*_for_order`` helpers resolve the explicit Reservation records of
one order.  Each record moves state inside the same row transaction that
applies its stock effect, so an order's hold is released, confirmed or
returned at most once.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from marketcore.domain.exceptions import EntityNotFoundError, LockTimeoutError
from marketcore.domain.model.reservation import Reservation, ReservationState
from marketcore.domain.repository.reservation_repository import ReservationRepository
from marketcore.domain.repository.stock_ledger import StockLedger

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ReservationManager:

    def __init__(
        self,
        ledger: StockLedger,
        reservation_repo: ReservationRepository,
        lock_timeout: float = 2.0,
        max_attempts: int = 3,
        backoff: float = 0.05,
    ) -> None:
        self._ledger = ledger
        self._reservation_repo = reservation_repo
        self._lock_timeout = lock_timeout
        self._max_attempts = max_attempts
        self._backoff = backoff

    # --- Product-level primitives ---------------------------------------------

    def reserve(
        self, product_id: str, quantity: int, order_ref: str | None = None
    ) -> Reservation | None:
        """Hold ``quantity`` units of a product.

        Raises InsufficientStockError if fewer units are available.  When
        ``order_ref`` is given, an explicit Reservation record is stored in
        the same transaction and returned.
        """

        def work() -> Reservation | None:
            with self._ledger.transaction(product_id, self._lock_timeout) as row:
                row.reserve(quantity)
                if order_ref is None:
                    return None
                reservation = Reservation(
                    id=self._reservation_repo.next_id(),
                    order_ref=order_ref,
                    product_id=product_id,
                    quantity=quantity,
                )
                self._reservation_repo.save(reservation)
                return reservation

        reservation = self._with_retry(work)
        logger.debug(
            "Stock reserved",
            product_id=product_id,
            quantity=quantity,
            order_ref=order_ref,
        )
        return reservation

    def release(self, product_id: str, quantity: int) -> int:
        """Drop up to ``quantity`` units of reservation (clamped at zero)."""

        def work() -> int:
            with self._ledger.transaction(product_id, self._lock_timeout) as row:
                return row.release(quantity)

        released = self._with_retry(work)
        if released < quantity:
            logger.warning(
                "Released less than requested",
                product_id=product_id,
                requested=quantity,
                released=released,
            )
        return released

    def confirm(self, product_id: str, quantity: int) -> None:
        """Convert a reservation into a sale: release it and deduct stock."""

        def work() -> int:
            with self._ledger.transaction(product_id, self._lock_timeout) as row:
                return row.confirm(quantity)

        released = self._with_retry(work)
        if released < quantity:
            logger.warning(
                "Confirmed more than was reserved",
                product_id=product_id,
                quantity=quantity,
                reserved_released=released,
            )

    def cancel(self, product_id: str, quantity: int) -> None:
        """Return sold units to stock after a refund."""

        def work() -> None:
            with self._ledger.transaction(product_id, self._lock_timeout) as row:
                row.cancel(quantity)

        self._with_retry(work)

    def available(self, product_id: str) -> int:
        row = self._ledger.get(product_id)
        if row is None:
            raise EntityNotFoundError(f"No stock record for product '{product_id}'")
        return row.available_quantity

    # --- Order-level helpers --------------------------------------------------

    def reservations_for(self, order_ref: str) -> list[Reservation]:
        return self._reservation_repo.list_for_order(order_ref)

    def release_for_order(self, order_ref: str) -> int:
        """Release every active reservation of an order; returns how many."""
        return self._resolve(
            order_ref,
            ReservationState.ACTIVE,
            lambda row, r: row.release(r.quantity),
            Reservation.mark_released,
        )

    def confirm_for_order(self, order_ref: str) -> int:
        """Confirm every active reservation of an order; returns how many."""
        return self._resolve(
            order_ref,
            ReservationState.ACTIVE,
            lambda row, r: row.confirm(r.quantity),
            Reservation.mark_confirmed,
        )

    def cancel_for_order(self, order_ref: str) -> int:
        """Return stock for every confirmed reservation of an order; returns how many."""
        return self._resolve(
            order_ref,
            ReservationState.CONFIRMED,
            lambda row, r: row.cancel(r.quantity),
            Reservation.mark_cancelled,
        )

    # --- Internal helpers -----------------------------------------------------

    def _resolve(
        self,
        order_ref: str,
        source: ReservationState,
        apply: Callable,
        mark: Callable[[Reservation], None],
    ) -> int:
        resolved = 0
        for listed in self._reservation_repo.list_for_order(order_ref):
            if listed.state != source:
                continue

            def work(listed: Reservation = listed) -> bool:
                with self._ledger.transaction(listed.product_id, self._lock_timeout) as row:
                    # Re-read under the row lock; a concurrent resolver may have won.
                    reservation = self._reservation_repo.get(listed.id)
                    if reservation is None or reservation.state != source:
                        return False
                    apply(row, reservation)
                    mark(reservation)
                    self._reservation_repo.save(reservation)
                    return True

            if self._with_retry(work):
                resolved += 1

        logger.debug(
            "Reservations resolved",
            order_ref=order_ref,
            from_state=source.value,
            count=resolved,
        )
        return resolved

    def _with_retry(self, work: Callable[[], T]) -> T:
        retrying = Retrying(
            retry=retry_if_exception_type(LockTimeoutError),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff, max=self._backoff * 8),
            reraise=True,
        )
        return retrying(work)
