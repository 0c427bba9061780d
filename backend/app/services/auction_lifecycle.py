"""Auction lifecycle state machine.

States only move forward::

    DRAFT -> APPROVED_AWAITING_PAYMENT -> ACTIVE -> ENDED -> ENDED_NO_RESPONSE

Every transition helper re-checks the persisted state and returns ``False``
without touching the auction when it is already at or past the target, so
sweeps and redelivered events can call them repeatedly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Auction, AuctionState, CommissionStatus, DepositStatus

logger = logging.getLogger(__name__)

_ORDER = {
    AuctionState.DRAFT: 0,
    AuctionState.APPROVED_AWAITING_PAYMENT: 1,
    AuctionState.ACTIVE: 2,
    AuctionState.ENDED: 3,
    AuctionState.ENDED_NO_RESPONSE: 4,
}

# Allowed single-step edges; anything else is rejected even when it moves forward.
_EDGES = {
    (AuctionState.APPROVED_AWAITING_PAYMENT, AuctionState.ACTIVE),
    (AuctionState.ACTIVE, AuctionState.ENDED),
    (AuctionState.ENDED, AuctionState.ENDED_NO_RESPONSE),
}


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything here is stored in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def at_or_past(auction: Auction, target: AuctionState) -> bool:
    return _ORDER[auction.state] >= _ORDER[target]


def _advance(auction: Auction, target: AuctionState) -> bool:
    if at_or_past(auction, target):
        return False
    if (auction.state, target) not in _EDGES:
        logger.warning(
            "Auction %s cannot move from %s to %s",
            auction.id,
            auction.state.value,
            target.value,
        )
        return False
    auction.state = target
    return True


def set_once(auction: Auction, field: str, value: Any) -> bool:
    """Write a settlement field only if it has never been set."""
    if getattr(auction, field) is not None:
        return False
    setattr(auction, field, value)
    return True


@dataclass(slots=True, frozen=True)
class DepositOutcome:
    status: DepositStatus
    required: Decimal
    held: Decimal


def is_due_for_close(auction: Auction, now: datetime) -> bool:
    return (
        auction.state is AuctionState.ACTIVE
        and auction.ends_at is not None
        and as_utc(auction.ends_at) <= now
    )


def is_due_for_deadline(auction: Auction, now: datetime) -> bool:
    return (
        auction.state is AuctionState.ENDED
        and not auction.buyer_confirmed_purchase
        and auction.current_winner_id is not None
        and auction.deposit_status is not DepositStatus.FORFEITED
        and auction.winner_deadline_at is not None
        and as_utc(auction.winner_deadline_at) <= now
    )


def activate(auction: Auction, now: datetime) -> bool:
    """Listing fee paid: APPROVED_AWAITING_PAYMENT -> ACTIVE."""
    if not _advance(auction, AuctionState.ACTIVE):
        return False
    auction.activated_at = now
    return True


def close_without_winner(auction: Auction, now: datetime) -> bool:
    if not _advance(auction, AuctionState.ENDED):
        return False
    auction.ended_at = now
    return True


def winner_deadline(auction: Auction, hours: int, now: datetime) -> datetime:
    base = as_utc(auction.ends_at) if auction.ends_at is not None else now
    return base + timedelta(hours=hours)


def close_with_deposit(
    auction: Auction,
    outcome: DepositOutcome,
    *,
    deadline_hours: int,
    now: datetime,
) -> bool:
    """ACTIVE -> ENDED for an auction with a winner, freezing deposit fields."""

    if not _advance(auction, AuctionState.ENDED):
        return False
    auction.ended_at = now
    set_once(auction, "final_price", auction.current_price)
    set_once(auction, "deposit_required", outcome.required)
    set_once(auction, "deposit_held", outcome.held)
    if auction.deposit_status is DepositStatus.NONE:
        auction.deposit_status = outcome.status
    set_once(auction, "winner_deadline_at", winner_deadline(auction, deadline_hours, now))
    set_once(auction, "winner_deadline_hours", deadline_hours)
    return True


def mark_no_response(auction: Auction, *, forfeited: Decimal, now: datetime) -> bool:
    """ENDED -> ENDED_NO_RESPONSE after the winner missed the deadline."""

    if auction.deposit_status is DepositStatus.FORFEITED:
        return False
    if not _advance(auction, AuctionState.ENDED_NO_RESPONSE):
        return False
    auction.deposit_status = DepositStatus.FORFEITED
    auction.commission_status = CommissionStatus.FORFEITED
    set_once(auction, "forfeit_amount", forfeited)
    set_once(auction, "forfeited_at", now)
    auction.winner_contact_released = False
    return True


def mark_deposit_forfeited(auction: Auction, *, forfeited: Decimal, now: datetime) -> bool:
    """Operator forfeit of a held deposit; the auction state is left alone."""

    if auction.deposit_status is not DepositStatus.HELD:
        return False
    auction.deposit_status = DepositStatus.FORFEITED
    set_once(auction, "forfeit_amount", forfeited)
    set_once(auction, "forfeited_at", now)
    return True


def record_listing_fee(auction: Auction, payment_id: UUID) -> bool:
    if auction.listing_fee_paid:
        return False
    auction.listing_fee_paid = True
    auction.listing_fee_payment_id = payment_id
    return True


def record_commission(
    auction: Auction, *, side: str, payment_id: UUID, now: datetime
) -> bool:
    """Set one side's commission flag and recompute the aggregate status.

    A forfeited aggregate stays forfeited; the side flag is still recorded so
    the captured money is accounted for exactly once.
    """

    if side not in ("buyer", "seller"):
        raise ValueError(f"Unknown commission side: {side}")
    if getattr(auction, f"{side}_commission_paid"):
        return False

    setattr(auction, f"{side}_commission_paid", True)
    setattr(auction, f"{side}_commission_payment_id", payment_id)
    setattr(auction, f"{side}_commission_paid_at", now)

    if auction.commission_status is CommissionStatus.FORFEITED:
        logger.warning(
            "Auction %s commission is forfeited; %s payment %s recorded without status change",
            auction.id,
            side,
            payment_id,
        )
    elif auction.buyer_commission_paid and auction.seller_commission_paid:
        auction.commission_status = CommissionStatus.PAID
    elif auction.buyer_commission_paid:
        auction.commission_status = CommissionStatus.BUYER_PAID
    else:
        auction.commission_status = CommissionStatus.SELLER_PAID

    if (
        side == "buyer"
        and auction.commission_status is not CommissionStatus.FORFEITED
        and not auction.winner_contact_released
    ):
        auction.winner_contact_released = True
    return True


async def ids_due_for_close(session: AsyncSession, now: datetime) -> list[UUID]:
    stmt = (
        select(Auction.id)
        .where(Auction.state == AuctionState.ACTIVE, Auction.ends_at <= now)
        .order_by(Auction.ends_at)
    )
    return list((await session.execute(stmt)).scalars())


async def ids_due_for_deadline(session: AsyncSession, now: datetime) -> list[UUID]:
    stmt = (
        select(Auction.id)
        .where(
            Auction.state == AuctionState.ENDED,
            Auction.buyer_confirmed_purchase.is_(False),
            Auction.winner_deadline_at <= now,
        )
        .order_by(Auction.winner_deadline_at)
    )
    return list((await session.execute(stmt)).scalars())
