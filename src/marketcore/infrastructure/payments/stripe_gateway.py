"""Stripe payment gateway adapter (stripe-python)."""

from __future__ import annotations

import stripe
import structlog

from marketcore.domain.exceptions import InvalidSignatureError, PaymentProviderError
from marketcore.domain.model.payment import PaymentEvent, PaymentIntent
from marketcore.domain.model.value_objects import Money
from marketcore.domain.port.payment_gateway import PaymentGateway
from marketcore.infrastructure.payments.events import decode_event

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):

    def __init__(self, api_key: str, webhook_secret: str, tolerance: int = 300) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._tolerance = tolerance

    def create_payment_intent(
        self, amount: Money, metadata: dict[str, str]
    ) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount.to_minor_units(),
                currency=amount.currency.lower(),
                metadata=metadata,
                description=f"Order #{metadata.get('order_number', '')}",
                api_key=self._api_key,
            )
        except stripe.StripeError as exc:
            logger.error(
                "Failed to create Stripe payment intent",
                order_number=metadata.get("order_number"),
                error=str(exc),
            )
            raise PaymentProviderError(f"Failed to create payment intent: {exc}") from exc

        logger.info(
            "Stripe payment intent created",
            order_number=metadata.get("order_number"),
            payment_ref=intent.id,
        )
        return PaymentIntent(ref=intent.id, client_secret=intent.client_secret)

    def verify_webhook(self, payload: bytes | str, signature: str) -> PaymentEvent:
        try:
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        except UnicodeDecodeError as exc:
            raise InvalidSignatureError("Invalid payload") from exc
        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self._webhook_secret, self._tolerance
            )
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignatureError("Invalid signature") from exc
        return decode_event(body)
