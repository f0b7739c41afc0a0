"""Payment gateway port (abstract interface).

Defines the contract that payment provider adapters implement, so the
application layer can run against ``FakeGateway`` in development and tests
and ``StripeGateway`` in production without any code change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.payment import PaymentEvent, PaymentIntent
from marketcore.domain.model.value_objects import Money


class PaymentGateway(ABC):

    @abstractmethod
    def create_payment_intent(
        self, amount: Money, metadata: dict[str, str]
    ) -> PaymentIntent:
        """Open a payment for ``amount``.

        Raises PaymentProviderError when the provider refuses or is
        unreachable.
        """

    @abstractmethod
    def verify_webhook(self, payload: bytes | str, signature: str) -> PaymentEvent:
        """Authenticate and decode a webhook delivery.

        Raises InvalidSignatureError for a bad signature or a payload that
        cannot be decoded.
        """
