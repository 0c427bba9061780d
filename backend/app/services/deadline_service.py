"""Winner deadline enforcement: forfeit the held deposit of a non-responsive winner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.db.transactions import Abort, Commit, Outcome
from app.models import Auction, PlatformRevenueEvent, RevenueSource, RevenueType
from app.services import auction_lifecycle, wallet_service
from app.services.policy_service import SettlementRules
from app.services.tier_rules import tiered_amount

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ForfeitResult:
    auction_id: UUID
    forfeited: bool
    requested: Decimal | None = None
    taken: Decimal | None = None


async def enforce_deadline(
    session: AsyncSession,
    auction_id: UUID,
    *,
    rules: SettlementRules,
    now: datetime,
    currency: str,
) -> Outcome:
    """Transaction body for one overdue winner.

    The amount taken is capped by what the winner still has reserved; the
    platform revenue entry records what actually moved.
    """

    auction = await session.get(Auction, auction_id)
    if auction is None:
        return Abort(NotFoundError(f"Auction {auction_id} not found"))
    if not auction_lifecycle.is_due_for_deadline(auction, now):
        return Commit(ForfeitResult(auction_id=auction.id, forfeited=False))

    winner_id = auction.current_winner_id
    final_price = auction.final_price
    if final_price is None:
        final_price = auction.current_price
    requested = tiered_amount(final_price, rules.forfeit_tiers)
    taken = await wallet_service.forfeit(
        session, winner_id, requested, auction_id=auction.id
    )
    session.add(
        PlatformRevenueEvent(
            auction_id=auction.id,
            user_id=winner_id,
            amount=taken,
            currency=currency.upper(),
            type=RevenueType.FORFEIT,
            source=RevenueSource.FORFEIT,
        )
    )
    auction_lifecycle.mark_no_response(auction, forfeited=taken, now=now)
    logger.info(
        "Auction %s winner %s missed the deadline; forfeited %s of %s",
        auction.id,
        winner_id,
        taken,
        requested,
    )
    return Commit(
        ForfeitResult(
            auction_id=auction.id, forfeited=True, requested=requested, taken=taken
        )
    )
