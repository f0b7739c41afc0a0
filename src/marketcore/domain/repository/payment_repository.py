"""Abstract repository for payment records and processed provider events."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.payment import Payment


class PaymentRepository(ABC):

    @abstractmethod
    def save(self, payment: Payment) -> None:
        """Persist a payment record, assigning its ID if new."""

    @abstractmethod
    def list_for_order(self, order_id: int) -> list[Payment]:
        """Return every payment record of an order."""

    @abstractmethod
    def has_processed_event(self, event_id: str) -> bool:
        """True if a provider event with this ID was already applied."""

    @abstractmethod
    def record_processed_event(self, event_id: str) -> None:
        """Remember that a provider event was applied."""
