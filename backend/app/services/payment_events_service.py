"""Apply verified gateway events to payments, wallets and auctions.

Each event is handled in one transaction: the event id is recorded alongside
the payment status change and its side effects, so a redelivered event either
sees its own record or the already-advanced payment and changes nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.transactions import Commit, Outcome
from app.integrations.stripe_events import (
    ChargeFailed,
    ChargeRefunded,
    ChargeSucceeded,
    GatewayEvent,
    UnrecognizedEvent,
)
from app.models import (
    Auction,
    AuctionState,
    Payment,
    PaymentStatus,
    PaymentType,
    PlatformRevenueEvent,
    RevenueSource,
    RevenueType,
)
from app.services import auction_lifecycle, payment_store, wallet_service

logger = logging.getLogger(__name__)

PROCESSED = "processed"
DUPLICATE = "duplicate"
IGNORED = "ignored"
UNATTRIBUTED = "unattributed"
NOOP = "noop"

_COMMISSION_SIDES = {
    PaymentType.BUYER_COMMISSION: ("buyer", RevenueType.BUYER_COMMISSION),
    PaymentType.SELLER_COMMISSION: ("seller", RevenueType.SELLER_COMMISSION),
}


def _event_type(event: GatewayEvent, raw: dict[str, Any]) -> str:
    if isinstance(event, UnrecognizedEvent):
        return event.event_type
    return str(raw.get("type") or type(event).__name__)


async def _load_auction(session: AsyncSession, payment: Payment) -> Auction | None:
    if payment.auction_id is None:
        logger.error("Payment %s (%s) has no auction", payment.id, payment.type.value)
        return None
    auction = await session.get(Auction, payment.auction_id)
    if auction is None:
        logger.error(
            "Auction %s for payment %s not found", payment.auction_id, payment.id
        )
    return auction


async def _apply_listing_fee(
    session: AsyncSession, payment: Payment, now: datetime
) -> None:
    auction = await _load_auction(session, payment)
    if auction is None:
        return
    auction_lifecycle.record_listing_fee(auction, payment.id)
    if auction.state is AuctionState.APPROVED_AWAITING_PAYMENT:
        auction_lifecycle.activate(auction, now)
        logger.info("Auction %s activated by listing fee %s", auction.id, payment.id)


async def _apply_commission(
    session: AsyncSession, payment: Payment, amount: Decimal, now: datetime
) -> None:
    side, revenue_type = _COMMISSION_SIDES[payment.type]
    auction = await _load_auction(session, payment)
    if auction is None:
        return
    if not auction_lifecycle.record_commission(
        auction, side=side, payment_id=payment.id, now=now
    ):
        return
    payer_id = payment.user_id
    if side == "seller" and auction.seller_id is not None:
        payer_id = auction.seller_id
    session.add(
        PlatformRevenueEvent(
            auction_id=auction.id,
            user_id=payer_id,
            payment_id=payment.id,
            amount=amount,
            currency=payment.currency.upper(),
            type=revenue_type,
            source=RevenueSource.COMMISSION,
        )
    )


async def _apply_success(
    session: AsyncSession, payment: Payment, event: ChargeSucceeded, now: datetime
) -> str:
    # Status first: a second delivery fails this guard and skips the effects.
    if not payment_store.transition(payment, PaymentStatus.SUCCEEDED):
        return NOOP
    amount = event.amount if event.amount is not None else payment.amount

    if payment.type is PaymentType.DEPOSIT:
        await wallet_service.credit_available(
            session,
            payment.user_id,
            amount,
            auction_id=payment.auction_id,
            payment_id=payment.id,
            note="deposit top-up",
        )
    elif payment.type is PaymentType.LISTING_FEE:
        await _apply_listing_fee(session, payment, now)
    elif payment.type in _COMMISSION_SIDES:
        await _apply_commission(session, payment, amount, now)
    return PROCESSED


async def _apply_refund(
    session: AsyncSession, payment: Payment, event: ChargeRefunded
) -> str:
    if not payment_store.transition(
        payment, PaymentStatus.REFUNDED, refund_id=event.refund_reference
    ):
        return NOOP
    if payment.type is PaymentType.DEPOSIT:
        amount = event.amount_refunded
        if amount is None:
            amount = payment.amount
        await wallet_service.credit_available(
            session,
            payment.user_id,
            amount,
            auction_id=payment.auction_id,
            payment_id=payment.id,
            note="gateway refund",
        )
    return PROCESSED


async def apply_gateway_event(
    session: AsyncSession,
    event: GatewayEvent,
    *,
    raw: dict[str, Any],
    now: datetime,
) -> Outcome:
    """Transaction body for one verified event; commits a short status string."""

    if await payment_store.event_already_recorded(session, event.event_id):
        logger.info("Gateway event %s already processed", event.event_id)
        return Commit(DUPLICATE)

    if isinstance(event, UnrecognizedEvent):
        logger.info("Ignoring gateway event type %s", event.event_type)
        payment_store.record_event(
            session, event_id=event.event_id, event_type=event.event_type, raw=raw
        )
        return Commit(IGNORED)

    payment = await payment_store.correlate(
        session,
        payment_id=event.payment_id,
        gateway_reference_id=event.payment_intent_id,
    )
    if payment is None:
        # Not recorded, so a later redelivery can still be applied.
        logger.error(
            "Gateway event %s (intent %s) matches no payment; dropped",
            event.event_id,
            event.payment_intent_id,
        )
        return Commit(UNATTRIBUTED)

    payment_store.record_event(
        session,
        event_id=event.event_id,
        event_type=_event_type(event, raw),
        raw=raw,
    )
    if payment.gateway_reference_id is None and event.payment_intent_id:
        payment_store.associate_gateway_reference(payment, event.payment_intent_id)

    if isinstance(event, ChargeSucceeded):
        result = await _apply_success(session, payment, event, now)
    elif isinstance(event, ChargeFailed):
        changed = payment_store.transition(
            payment, PaymentStatus.FAILED, failure_reason=event.failure_reason
        )
        result = PROCESSED if changed else NOOP
    elif isinstance(event, ChargeRefunded):
        result = await _apply_refund(session, payment, event)
    else:
        result = IGNORED

    logger.info(
        "Gateway event %s for payment %s (%s): %s",
        event.event_id,
        payment.id,
        payment.type.value,
        result,
    )
    return Commit(result)
