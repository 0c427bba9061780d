"""Close ended auctions: freeze the final price and size the winner deposit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.db.transactions import Abort, Commit, Outcome
from app.models import (
    CONTRACT_VERSION,
    Auction,
    AuctionState,
    Contract,
    DepositStatus,
    User,
)
from app.services import auction_lifecycle, wallet_service
from app.services.auction_lifecycle import DepositOutcome
from app.services.policy_service import SettlementRules
from app.services.tier_rules import ZERO, tiered_amount

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CloseResult:
    auction_id: UUID
    closed: bool
    state: AuctionState | None = None
    seller_id: UUID | None = None
    winner_id: UUID | None = None
    deposit_status: DepositStatus | None = None
    deposit_required: Decimal | None = None


def _result(auction: Auction, *, closed: bool) -> CloseResult:
    return CloseResult(
        auction_id=auction.id,
        closed=closed,
        state=auction.state,
        seller_id=auction.seller_id,
        winner_id=auction.current_winner_id,
        deposit_status=auction.deposit_status,
        deposit_required=auction.deposit_required,
    )


async def _size_deposit(
    session: AsyncSession, auction: Auction, winner_id: UUID, rules: SettlementRules
) -> DepositOutcome:
    required = tiered_amount(auction.current_price, rules.deposit_tiers)
    winner = await session.get(User, winner_id)
    if winner is not None and winner.vip_deposit_waived:
        return DepositOutcome(DepositStatus.WAIVED, required, ZERO)

    wallet = await wallet_service.get_or_create_wallet(session, winner_id)
    if wallet.available >= required:
        held = await wallet_service.reserve(
            session, winner_id, required, auction_id=auction.id
        )
        return DepositOutcome(DepositStatus.HELD, required, held)
    return DepositOutcome(DepositStatus.INSUFFICIENT, required, ZERO)


async def close_auction(
    session: AsyncSession,
    auction_id: UUID,
    *,
    rules: SettlementRules,
    now: datetime,
) -> Outcome:
    """Transaction body closing one auction; a no-op unless it is ACTIVE and due."""

    auction = await session.get(Auction, auction_id)
    if auction is None:
        return Abort(NotFoundError(f"Auction {auction_id} not found"))
    if not auction_lifecycle.is_due_for_close(auction, now):
        return Commit(_result(auction, closed=False))

    winner_id = auction.current_winner_id
    if winner_id is None:
        auction_lifecycle.close_without_winner(auction, now)
        logger.info("Auction %s closed without a winner", auction.id)
        return Commit(_result(auction, closed=True))

    outcome = await _size_deposit(session, auction, winner_id, rules)
    auction_lifecycle.close_with_deposit(
        auction,
        outcome,
        deadline_hours=rules.winner_deadline_hours,
        now=now,
    )
    logger.info(
        "Auction %s closed at %s; deposit %s (required %s)",
        auction.id,
        auction.final_price,
        outcome.status.value,
        outcome.required,
    )
    return Commit(_result(auction, closed=True))


async def ensure_contract(
    session: AsyncSession, *, auction_id: UUID, seller_id: UUID, buyer_id: UUID
) -> Outcome:
    """Create the delivery contract unless one already exists for the auction."""

    if await session.get(Contract, auction_id) is not None:
        return Commit(False)
    session.add(
        Contract(
            auction_id=auction_id,
            seller_id=seller_id,
            buyer_id=buyer_id,
            terms_accepted_seller=False,
            terms_accepted_buyer=False,
            contract_version=CONTRACT_VERSION,
        )
    )
    # A racing creator turns this into IntegrityError; the retry sees their row.
    await session.flush()
    return Commit(True)
