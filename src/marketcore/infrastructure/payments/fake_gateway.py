"""Configurable fake payment gateway for development and testing.

Simulates the provider without any external calls.  Payment intents get
``fake_pi_*`` references; webhook deliveries are accepted when their
signature equals the configured test signature.
"""

from __future__ import annotations

from uuid import uuid4

from marketcore.domain.exceptions import InvalidSignatureError, PaymentProviderError
from marketcore.domain.model.payment import PaymentEvent, PaymentIntent
from marketcore.domain.model.value_objects import Money
from marketcore.domain.port.payment_gateway import PaymentGateway
from marketcore.infrastructure.payments.events import decode_event


class FakeGateway(PaymentGateway):

    def __init__(self, signature: str = "test-signature") -> None:
        self.signature = signature
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_payment_intent(
        self, amount: Money, metadata: dict[str, str]
    ) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "amount": amount.to_minor_units(),
                "currency": amount.currency.lower(),
                "metadata": dict(metadata),
            }
        )
        if not self.should_succeed:
            raise PaymentProviderError(self.failure_reason)

        ref = f"fake_pi_{uuid4().hex[:12]}"
        return PaymentIntent(ref=ref, client_secret=f"{ref}_secret_{uuid4().hex[:8]}")

    def verify_webhook(self, payload: bytes | str, signature: str) -> PaymentEvent:
        if signature != self.signature:
            raise InvalidSignatureError("Invalid signature")
        return decode_event(payload)
