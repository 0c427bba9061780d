"""Operator-triggered forfeit or refund of a winner's deposit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConsistencyViolationError,
    NotFoundError,
    ValidationError,
)
from app.db.transactions import Abort, Commit, Outcome
from app.integrations.stripe_client import Refund
from app.models import (
    Auction,
    Payment,
    PaymentStatus,
    PaymentType,
    PlatformRevenueEvent,
    RevenueSource,
    RevenueType,
)
from app.services import auction_lifecycle, payment_store, wallet_service
from app.services.tier_rules import ZERO, to_money

logger = logging.getLogger(__name__)

FORFEIT = "forfeit"
REFUND = "refund"
ACTIONS = (FORFEIT, REFUND)


@dataclass(slots=True, frozen=True)
class SettlementActionResult:
    status: str
    payment_id: UUID
    amount: Decimal
    refund_id: str | None = None


def parse_action(raw: str) -> str:
    action = (raw or "").strip().lower()
    if action not in ACTIONS:
        raise ValidationError('Invalid action (must be "forfeit" or "refund")')
    return action


def parse_settlement_amount(raw: Decimal) -> Decimal:
    amount = to_money(raw)
    if amount <= ZERO:
        raise ValidationError("Amount must be positive")
    return amount


async def require_deposit(
    session: AsyncSession, *, user_id: UUID, auction_id: UUID
) -> Payment:
    deposit = await payment_store.find_succeeded_deposit(
        session, user_id=user_id, auction_id=auction_id
    )
    if deposit is None:
        raise NotFoundError("Payment not found for this auction")
    return deposit


async def forfeit_deposit(
    session: AsyncSession,
    *,
    user_id: UUID,
    auction_id: UUID,
    amount: Decimal,
    now: datetime,
) -> Outcome:
    """Move up to ``amount`` of the reserved deposit into platform revenue."""

    original = await payment_store.find_succeeded_deposit(
        session, user_id=user_id, auction_id=auction_id
    )
    if original is None:
        return Abort(NotFoundError("Payment not found for this auction"))

    taken = await wallet_service.forfeit(
        session, user_id, amount, auction_id=auction_id, payment_id=original.id
    )
    if taken <= ZERO:
        return Abort(ValidationError("No reserved deposit to forfeit"))

    forfeit_payment = payment_store.add_payment(
        session,
        user_id=user_id,
        payment_type=PaymentType.FORFEIT,
        amount=taken,
        currency=original.currency,
        auction_id=auction_id,
        gateway_reference_id=original.gateway_reference_id,
        status=PaymentStatus.SUCCEEDED,
        related_payment_id=original.id,
    )
    payment_store.transition(original, PaymentStatus.FORFEITED)
    await session.flush()

    session.add(
        PlatformRevenueEvent(
            auction_id=auction_id,
            user_id=user_id,
            payment_id=forfeit_payment.id,
            amount=taken,
            currency=original.currency.upper(),
            type=RevenueType.FORFEIT,
            source=RevenueSource.FORFEIT,
        )
    )
    auction = await session.get(Auction, auction_id)
    if auction is not None:
        auction_lifecycle.mark_deposit_forfeited(auction, forfeited=taken, now=now)

    logger.info(
        "Deposit %s forfeited %s for user %s on auction %s",
        original.id,
        taken,
        user_id,
        auction_id,
    )
    return Commit(
        SettlementActionResult(status="forfeited", payment_id=forfeit_payment.id, amount=taken)
    )


async def record_refund(
    session: AsyncSession,
    *,
    original_id: UUID,
    refund: Refund,
    amount: Decimal,
) -> Outcome:
    """Ledger half of a refund whose gateway call already succeeded."""

    original = await session.get(Payment, original_id)
    if original is None:
        return Abort(NotFoundError("Payment not found"))
    if original.status is not PaymentStatus.SUCCEEDED:
        logger.critical(
            "Gateway refund %s issued but deposit %s is now %s",
            refund.id,
            original.id,
            original.status.value,
        )
        return Abort(
            ConsistencyViolationError(
                f"Deposit {original.id} changed to {original.status.value} during refund"
            )
        )

    await wallet_service.release_to_available(
        session,
        original.user_id,
        amount,
        auction_id=original.auction_id,
        payment_id=original.id,
    )
    refund_payment = payment_store.add_payment(
        session,
        user_id=original.user_id,
        payment_type=PaymentType.REFUND,
        amount=amount,
        currency=original.currency,
        auction_id=original.auction_id,
        gateway_reference_id=original.gateway_reference_id,
        status=PaymentStatus.SUCCEEDED,
        related_payment_id=original.id,
        refund_id=refund.id,
    )
    payment_store.transition(original, PaymentStatus.REFUNDED, refund_id=refund.id)
    await session.flush()

    logger.info("Deposit %s refunded %s (refund %s)", original.id, amount, refund.id)
    return Commit(
        SettlementActionResult(
            status="refunded",
            payment_id=refund_payment.id,
            amount=amount,
            refund_id=refund.id,
        )
    )
