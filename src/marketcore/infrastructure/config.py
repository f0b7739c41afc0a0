"""Settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"

GATEWAYS = ("fake", "stripe")


class ConfigurationError(Exception):
    """An environment variable is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    lock_timeout: float = 2.0
    lock_retries: int = 3
    tax_rate: Decimal = Decimal("0.10")
    currency: str = "USD"
    payment_gateway: str = "fake"
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    fake_signature: str = "test-signature"
    environment: str = "development"


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ

    gateway = env.get("MARKETCORE_PAYMENT_GATEWAY", "fake").lower()
    if gateway not in GATEWAYS:
        raise ConfigurationError(
            f"MARKETCORE_PAYMENT_GATEWAY must be one of {', '.join(GATEWAYS)}, got {gateway!r}"
        )

    settings = Settings(
        data_dir=Path(env.get("MARKETCORE_DATA_DIR") or DEFAULT_DATA_DIR),
        lock_timeout=_parse(env, "MARKETCORE_LOCK_TIMEOUT", "2.0", float),
        lock_retries=_parse(env, "MARKETCORE_LOCK_RETRIES", "3", int),
        tax_rate=_parse(env, "MARKETCORE_TAX_RATE", "0.10", Decimal),
        currency=env.get("MARKETCORE_CURRENCY", "USD").upper(),
        payment_gateway=gateway,
        stripe_secret_key=env.get("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET"),
        fake_signature=env.get("MARKETCORE_FAKE_SIGNATURE", "test-signature"),
        environment=(env.get("ENVIRONMENT") or "development").lower(),
    )

    if settings.lock_timeout <= 0 or settings.lock_retries < 1:
        raise ConfigurationError("Lock timeout must be positive and retries at least 1")
    if settings.payment_gateway == "stripe" and not (
        settings.stripe_secret_key and settings.stripe_webhook_secret
    ):
        raise ConfigurationError(
            "STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET are required for the stripe gateway"
        )
    return settings


def _parse(env, name, default, convert):
    raw = env.get(name, default)
    try:
        return convert(raw)
    except (ValueError, InvalidOperation) as exc:
        raise ConfigurationError(f"{name} is not a valid value: {raw!r}") from exc
