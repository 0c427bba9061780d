"""Service layer exports."""
from app.services import (
    auction_lifecycle,
    closing_service,
    deadline_service,
    deposit_settlement_service,
    payment_events_service,
    payment_store,
    payments_service,
    policy_service,
    tier_rules,
    wallet_service,
)

__all__ = [
    "auction_lifecycle",
    "closing_service",
    "deadline_service",
    "deposit_settlement_service",
    "payment_events_service",
    "payment_store",
    "payments_service",
    "policy_service",
    "tier_rules",
    "wallet_service",
]
