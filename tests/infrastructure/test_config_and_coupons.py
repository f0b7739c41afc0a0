"""Tests for settings loading and the JSON coupon policy."""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from marketcore.domain.exceptions import InvalidCouponError
from marketcore.domain.model.value_objects import Money
from marketcore.infrastructure.config import DEFAULT_DATA_DIR, ConfigurationError, load_settings
from marketcore.infrastructure.coupons import JsonCouponPolicy, NoCouponPolicy


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings({})
        assert settings.data_dir == DEFAULT_DATA_DIR
        assert settings.payment_gateway == "fake"
        assert settings.tax_rate == Decimal("0.10")
        assert settings.lock_retries == 3

    def test_overrides(self):
        settings = load_settings(
            {
                "MARKETCORE_DATA_DIR": "/tmp/mc",
                "MARKETCORE_LOCK_TIMEOUT": "0.5",
                "MARKETCORE_TAX_RATE": "0.2",
                "MARKETCORE_CURRENCY": "eur",
            }
        )
        assert settings.data_dir == Path("/tmp/mc")
        assert settings.lock_timeout == 0.5
        assert settings.tax_rate == Decimal("0.2")
        assert settings.currency == "EUR"

    def test_bad_number(self):
        with pytest.raises(ConfigurationError, match="MARKETCORE_LOCK_RETRIES"):
            load_settings({"MARKETCORE_LOCK_RETRIES": "many"})

    def test_unknown_gateway(self):
        with pytest.raises(ConfigurationError, match="MARKETCORE_PAYMENT_GATEWAY"):
            load_settings({"MARKETCORE_PAYMENT_GATEWAY": "paypal"})

    def test_stripe_requires_secrets(self):
        with pytest.raises(ConfigurationError, match="STRIPE_SECRET_KEY"):
            load_settings({"MARKETCORE_PAYMENT_GATEWAY": "stripe"})


class TestCouponPolicies:

    def _policy(self, tmp_path, *coupons) -> JsonCouponPolicy:
        path = tmp_path / "coupons.json"
        path.write_text(json.dumps(list(coupons)), encoding="utf-8")
        return JsonCouponPolicy(path)

    def test_percentage(self, tmp_path):
        policy = self._policy(tmp_path, {"code": "SAVE10", "type": "percentage", "value": "10"})
        assert policy.discount("save10", Money.of("80.00"), "u1") == Money.of("8.00")

    def test_fixed_capped_at_subtotal(self, tmp_path):
        policy = self._policy(tmp_path, {"code": "FLAT", "type": "fixed", "value": "50"})
        assert policy.discount("FLAT", Money.of("30.00"), "u1") == Money.of("30.00")

    def test_minimum_amount(self, tmp_path):
        policy = self._policy(
            tmp_path, {"code": "BIG", "type": "fixed", "value": "5", "minimum_amount": "100"}
        )
        with pytest.raises(InvalidCouponError, match="BIG"):
            policy.discount("BIG", Money.of("99.99"), "u1")

    def test_expired_and_inactive(self, tmp_path):
        policy = self._policy(
            tmp_path,
            {"code": "OLD", "value": "5", "expires_at": "2000-01-01T00:00:00"},
            {"code": "OFF", "value": "5", "is_active": False},
        )
        for code in ("OLD", "OFF", "NOPE"):
            with pytest.raises(InvalidCouponError):
                policy.discount(code, Money.of("50.00"), "u1")

    def test_missing_file_and_no_policy(self, tmp_path):
        with pytest.raises(InvalidCouponError):
            JsonCouponPolicy(tmp_path / "none.json").discount("X", Money.of("5"), "u1")
        with pytest.raises(InvalidCouponError):
            NoCouponPolicy().discount("X", Money.of("5"), "u1")
