"""Decode provider webhook bodies into PaymentEvent values.

Bodies follow the Stripe event envelope::

    {"id": "evt_...", "type": "payment_intent.succeeded",
     "data": {"object": {"id": "pi_...", "amount": 11000, "currency": "usd", ...}}}

For ``charge.*`` events the object is a charge and the payment reference is
its ``payment_intent`` field.
"""

from __future__ import annotations

import json

from marketcore.domain.exceptions import InvalidSignatureError
from marketcore.domain.model.payment import PaymentEvent
from marketcore.domain.model.value_objects import Money


def decode_event(payload: bytes | str) -> PaymentEvent:
    """Decode a verified body; raise InvalidSignatureError if its shape is wrong."""
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise InvalidSignatureError("Invalid payload") from exc

    if not isinstance(data, dict) or not data.get("id") or not data.get("type"):
        raise InvalidSignatureError("Invalid payload")

    event_id = data["id"]
    event_type = data["type"]
    if not isinstance(event_id, str) or not isinstance(event_type, str):
        raise InvalidSignatureError("Invalid payload")

    envelope = _mapping(data.get("data"))
    obj = _mapping(envelope.get("object"))

    if event_type.startswith("charge."):
        payment_ref = obj.get("payment_intent")
        charge_id = obj.get("id")
    else:
        payment_ref = obj.get("id")
        charges = _mapping(obj.get("charges")).get("data") or []
        if not isinstance(charges, list):
            raise InvalidSignatureError("Invalid payload")
        charge_id = _mapping(charges[0]).get("id") if charges else obj.get("latest_charge")

    if payment_ref is not None and not isinstance(payment_ref, str):
        raise InvalidSignatureError("Invalid payload")

    amount = obj.get("amount")
    currency = obj.get("currency") or "usd"
    if not isinstance(currency, str):
        raise InvalidSignatureError("Invalid payload")
    failure = _mapping(obj.get("last_payment_error"))

    return PaymentEvent(
        external_event_id=event_id,
        type=event_type,
        payment_ref=payment_ref,
        amount=_amount(amount, currency),
        charge_id=_text(charge_id),
        failure_reason=_text(failure.get("message")),
    )


def _mapping(value: object) -> dict:
    """An absent field reads as empty; any other non-object is malformed."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidSignatureError("Invalid payload")
    return value


def _amount(amount: object, currency: str) -> Money | None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        return None
    if amount < 0:
        raise InvalidSignatureError("Invalid payload")
    return Money.from_minor_units(amount, currency)


def _text(value: object) -> str | None:
    return value if isinstance(value, str) else None
