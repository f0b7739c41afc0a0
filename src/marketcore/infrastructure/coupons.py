"""Coupon policies.

``NoCouponPolicy`` refuses every code.  ``JsonCouponPolicy`` reads a list
of coupons from a JSON file::

    [{"code": "SAVE10", "type": "percentage", "value": "10",
      "minimum_amount": "50.00", "expires_at": "2030-01-01T00:00:00+00:00",
      "is_active": true}]

``type`` is ``percentage`` or ``fixed``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from marketcore.domain.exceptions import InvalidCouponError
from marketcore.domain.model.value_objects import Money
from marketcore.domain.port.coupon_policy import CouponPolicy


class NoCouponPolicy(CouponPolicy):

    def discount(self, code: str, subtotal: Money, user_id: str) -> Money:
        raise InvalidCouponError(f"Invalid or expired coupon code: {code}")


class JsonCouponPolicy(CouponPolicy):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path

    def discount(self, code: str, subtotal: Money, user_id: str) -> Money:
        coupon = self._find(code)
        if coupon is None or not _is_valid(coupon, subtotal):
            raise InvalidCouponError(f"Invalid or expired coupon code: {code}")

        value = Decimal(str(coupon["value"]))
        if coupon.get("type", "fixed") == "percentage":
            return subtotal.scaled(value / Decimal("100"))
        return Money(value, subtotal.currency).min(subtotal)

    def _find(self, code: str) -> dict | None:
        if not self._file_path.exists():
            return None
        for raw in json.loads(self._file_path.read_text(encoding="utf-8")):
            if raw["code"].upper() == code.strip().upper():
                return raw
        return None


def _is_valid(coupon: dict, subtotal: Money) -> bool:
    if not coupon.get("is_active", True):
        return False

    now = datetime.now(timezone.utc)
    starts_at = coupon.get("starts_at")
    if starts_at and now < _parse_time(starts_at):
        return False
    expires_at = coupon.get("expires_at")
    if expires_at and now > _parse_time(expires_at):
        return False

    minimum = coupon.get("minimum_amount")
    if minimum and subtotal.amount < Decimal(str(minimum)):
        return False
    return True


def _parse_time(raw: str) -> datetime:
    # Naive timestamps are taken as UTC.
    parsed = datetime.fromisoformat(raw)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
