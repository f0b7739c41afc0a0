"""Reservation: an explicit record of units held for one order.

The stock row only knows the *sum* of reservations.  These records keep
the mapping from order to product/quantity so that a payment outcome can
resolve exactly what that order took, exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from marketcore.domain.exceptions import IllegalTransitionError


class ReservationState(Enum):
    ACTIVE = "active"
    RELEASED = "released"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


_EDGES: dict[ReservationState, set[ReservationState]] = {
    ReservationState.ACTIVE: {ReservationState.RELEASED, ReservationState.CONFIRMED},
    ReservationState.CONFIRMED: {ReservationState.CANCELLED},
    ReservationState.RELEASED: set(),
    ReservationState.CANCELLED: set(),
}


@dataclass
class Reservation:

    id: str
    order_ref: str
    product_id: str
    quantity: int
    state: ReservationState = ReservationState.ACTIVE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_active(self) -> bool:
        return self.state == ReservationState.ACTIVE

    def mark_released(self) -> None:
        self._move_to(ReservationState.RELEASED)

    def mark_confirmed(self) -> None:
        self._move_to(ReservationState.CONFIRMED)

    def mark_cancelled(self) -> None:
        self._move_to(ReservationState.CANCELLED)

    def _move_to(self, target: ReservationState) -> None:
        if target not in _EDGES[self.state]:
            raise IllegalTransitionError(
                f"Reservation {self.id} cannot move from "
                f"{self.state.value} to {target.value}"
            )
        self.state = target
