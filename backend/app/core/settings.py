"""Specialized settings adapters for integrations."""

from __future__ import annotations

from pydantic import BaseModel

from app.core.config import get_settings


class PaymentSettings(BaseModel):
    """Slim view of payment-related configuration."""

    stripe_secret_key: str | None = None
    stripe_publishable_key: str | None = None
    stripe_webhook_secret: str | None = None
    default_currency: str = "aed"


class SettlementSettings(BaseModel):
    """Scheduling and retry knobs for the settlement engine."""

    scheduler_enabled: bool = True
    close_auctions_interval_seconds: int = 60
    enforce_deadlines_interval_seconds: int = 300
    transaction_max_attempts: int = 5
    transaction_retry_backoff_seconds: float = 0.05


def get_payment_settings() -> PaymentSettings:
    """Return payment-specific configuration."""

    settings = get_settings()
    return PaymentSettings(
        stripe_secret_key=settings.stripe_secret_key or None,
        stripe_publishable_key=settings.stripe_publishable_key or None,
        stripe_webhook_secret=settings.stripe_webhook_secret or None,
        default_currency=settings.default_currency.lower(),
    )


def get_settlement_settings() -> SettlementSettings:
    """Return settlement engine configuration."""

    settings = get_settings()
    return SettlementSettings(
        scheduler_enabled=settings.scheduler_enabled,
        close_auctions_interval_seconds=settings.close_auctions_interval_seconds,
        enforce_deadlines_interval_seconds=settings.enforce_deadlines_interval_seconds,
        transaction_max_attempts=max(1, settings.transaction_max_attempts),
        transaction_retry_backoff_seconds=max(
            0.0, settings.transaction_retry_backoff_seconds
        ),
    )
