"""Payment record store: creation, correlation lookups and guarded status moves."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.models import Payment, PaymentEvent, PaymentStatus, PaymentType
from app.services.tier_rules import ZERO, to_money

logger = logging.getLogger(__name__)

_TRANSITIONS: Mapping[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.CREATED: frozenset(
        {PaymentStatus.SUCCEEDED, PaymentStatus.FAILED, PaymentStatus.REFUNDED}
    ),
    PaymentStatus.FAILED: frozenset({PaymentStatus.SUCCEEDED, PaymentStatus.REFUNDED}),
    PaymentStatus.SUCCEEDED: frozenset(
        {PaymentStatus.REFUNDED, PaymentStatus.FORFEITED}
    ),
    PaymentStatus.REFUNDED: frozenset(),
    PaymentStatus.FORFEITED: frozenset(),
}


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in _TRANSITIONS[current]


def add_payment(
    session: AsyncSession,
    *,
    user_id: UUID,
    payment_type: PaymentType,
    amount: Decimal,
    currency: str,
    auction_id: UUID | None = None,
    gateway_reference_id: str | None = None,
    status: PaymentStatus = PaymentStatus.CREATED,
    related_payment_id: UUID | None = None,
    refund_id: str | None = None,
) -> Payment:
    """Stage a new payment row; type and amount are fixed from here on."""

    normalized = to_money(amount)
    if normalized <= ZERO:
        raise ValidationError("Payment amount must be positive")
    payment = Payment(
        user_id=user_id,
        type=payment_type,
        auction_id=auction_id,
        amount=normalized,
        currency=currency,
        gateway_reference_id=gateway_reference_id,
        status=status,
        related_payment_id=related_payment_id,
        refund_id=refund_id,
    )
    session.add(payment)
    return payment


async def get_payment(session: AsyncSession, payment_id: UUID) -> Payment | None:
    return await session.get(Payment, payment_id)


async def find_by_gateway_reference(
    session: AsyncSession, gateway_reference_id: str
) -> Payment | None:
    if not gateway_reference_id:
        return None
    stmt = (
        select(Payment)
        .where(Payment.gateway_reference_id == gateway_reference_id)
        .where(Payment.type.not_in((PaymentType.FORFEIT, PaymentType.REFUND)))
        .order_by(Payment.created_at)
        .limit(1)
    )
    return (await session.execute(stmt)).scalars().first()


async def correlate(
    session: AsyncSession,
    *,
    payment_id: str | None,
    gateway_reference_id: str | None,
) -> Payment | None:
    """Find the payment behind a gateway event.

    The internal id embedded in the charge metadata wins; the gateway
    reference is the fallback for records created before metadata carried it.
    """

    if payment_id:
        try:
            payment = await session.get(Payment, UUID(payment_id))
        except ValueError:
            logger.warning("Ignoring malformed payment id in metadata: %s", payment_id)
            payment = None
        if payment is not None:
            return payment
        logger.warning(
            "Payment %s from metadata not found; falling back to gateway reference",
            payment_id,
        )
    if gateway_reference_id:
        return await find_by_gateway_reference(session, gateway_reference_id)
    return None


async def find_succeeded_deposit(
    session: AsyncSession, *, user_id: UUID, auction_id: UUID
) -> Payment | None:
    stmt = (
        select(Payment)
        .where(
            Payment.user_id == user_id,
            Payment.auction_id == auction_id,
            Payment.type == PaymentType.DEPOSIT,
            Payment.status == PaymentStatus.SUCCEEDED,
        )
        .order_by(Payment.created_at)
        .limit(1)
    )
    return (await session.execute(stmt)).scalars().first()


def transition(
    payment: Payment,
    target: PaymentStatus,
    *,
    failure_reason: str | None = None,
    refund_id: str | None = None,
) -> bool:
    """Apply ``target`` if allowed from the current status.

    Returns False (and changes nothing) for repeats and out-of-order moves.
    """

    if payment.status is target or not can_transition(payment.status, target):
        logger.info(
            "Payment %s stays %s; transition to %s not applicable",
            payment.id,
            payment.status.value,
            target.value,
        )
        return False
    payment.status = target
    if target is PaymentStatus.FAILED:
        payment.failure_reason = failure_reason
    elif target is PaymentStatus.SUCCEEDED:
        payment.failure_reason = None
    if refund_id is not None:
        payment.refund_id = refund_id
    return True


def associate_gateway_reference(payment: Payment, gateway_reference_id: str) -> bool:
    """Attach the gateway id once; an existing reference is never replaced."""

    if payment.gateway_reference_id:
        return False
    payment.gateway_reference_id = gateway_reference_id
    return True


async def event_already_recorded(session: AsyncSession, event_id: str) -> bool:
    stmt = select(PaymentEvent.id).where(PaymentEvent.provider_event_id == event_id)
    return (await session.execute(stmt)).first() is not None


def record_event(
    session: AsyncSession, *, event_id: str, event_type: str, raw: dict
) -> PaymentEvent:
    event = PaymentEvent(provider_event_id=event_id, event_type=event_type, raw=raw)
    session.add(event)
    return event
