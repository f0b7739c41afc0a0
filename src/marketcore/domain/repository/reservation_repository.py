"""Abstract repository for Reservation records."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.reservation import Reservation


class ReservationRepository(ABC):

    @abstractmethod
    def next_id(self) -> str:
        """Generate a unique reservation ID."""

    @abstractmethod
    def get(self, reservation_id: str) -> Reservation | None:
        """Return a reservation by its ID, or None if not found."""

    @abstractmethod
    def list_for_order(self, order_ref: str) -> list[Reservation]:
        """Return every reservation taken under ``order_ref``, oldest first."""

    @abstractmethod
    def save(self, reservation: Reservation) -> None:
        """Persist a new or updated reservation."""
