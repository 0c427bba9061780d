"""Versioned API router."""

from fastapi import APIRouter

from . import (
    health,
    payments,
    payments_webhook,
    settlement_policy,
    settlements,
    wallets,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(payments_webhook.router)
router.include_router(payments.router)
router.include_router(settlements.router)
router.include_router(settlement_policy.router)
router.include_router(wallets.router)

__all__ = ["router"]
