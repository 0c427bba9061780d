"""Service layer for creating charge intents and linking them to payments."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from app.integrations.stripe_client import PaymentGateway, to_minor_units
from app.models import CHARGEABLE_TYPES, Auction, Payment, PaymentStatus, PaymentType
from app.security.permissions import Actor, require_owner_or_admin
from app.services import payment_store

logger = logging.getLogger(__name__)

_AUCTION_BOUND_TYPES = frozenset(
    {
        PaymentType.LISTING_FEE,
        PaymentType.BUYER_COMMISSION,
        PaymentType.SELLER_COMMISSION,
    }
)


def parse_payment_type(raw: Any) -> PaymentType:
    try:
        payment_type = PaymentType(str(raw))
    except ValueError as exc:
        raise ValidationError(f"Invalid payment type: {raw}") from exc
    if payment_type not in CHARGEABLE_TYPES:
        raise ValidationError(f"Payment type {payment_type.value} cannot be charged")
    return payment_type


def parse_amount(raw: Any) -> Decimal:
    """Accept numbers or numeric strings; reject NaN, infinities and non-positives."""

    if raw is None or isinstance(raw, bool):
        raise ValidationError("Amount is required")
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid amount: {raw}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {raw}")
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got: {amount}")
    if to_minor_units(amount) <= 0:
        raise ValidationError(f"Amount {amount} rounds to zero minor units")
    return amount


async def _check_auction_access(
    session: AsyncSession,
    actor: Actor,
    payment_type: PaymentType,
    auction_id: UUID | None,
) -> None:
    if auction_id is None:
        if payment_type in _AUCTION_BOUND_TYPES:
            raise ValidationError(f"auction_id is required for {payment_type.value} payments")
        return

    auction = await session.get(Auction, auction_id)
    if auction is None:
        raise NotFoundError(f"Auction {auction_id} not found")
    if payment_type is PaymentType.BUYER_COMMISSION:
        require_owner_or_admin(actor, auction.current_winner_id)
    elif payment_type in (PaymentType.SELLER_COMMISSION, PaymentType.LISTING_FEE):
        require_owner_or_admin(actor, auction.seller_id)


async def create_charge_intent(
    session: AsyncSession,
    *,
    actor: Actor,
    payment_type: Any,
    amount: Any,
    currency: str,
    auction_id: UUID | None,
    gateway: PaymentGateway,
) -> tuple[str, UUID]:
    """Persist a ``created`` payment, then open a gateway intent for it.

    The payment row exists before the gateway is called so the intent's
    metadata can carry its id. A gateway failure leaves the row ``failed``.
    """

    parsed_type = parse_payment_type(payment_type)
    parsed_amount = parse_amount(amount)
    currency = (currency or "").strip().lower()
    if not currency:
        raise ValidationError("Currency is required")
    await _check_auction_access(session, actor, parsed_type, auction_id)

    payment = payment_store.add_payment(
        session,
        user_id=actor.user_id,
        payment_type=parsed_type,
        amount=parsed_amount,
        currency=currency,
        auction_id=auction_id,
    )
    await session.commit()

    metadata = {
        "uid": str(actor.user_id),
        "type": parsed_type.value,
        "auctionId": str(auction_id) if auction_id else "",
        "paymentId": str(payment.id),
    }
    try:
        intent = gateway.create_payment_intent(
            amount=parsed_amount,
            currency=currency,
            metadata=metadata,
            idempotency_seed=payment.id,
        )
        if intent.client_secret is None:
            raise ExternalServiceError("Gateway did not return a client secret")
    except ExternalServiceError as exc:
        logger.error(
            "Charge intent for payment %s (%s %s %s) failed: %s",
            payment.id,
            parsed_type.value,
            parsed_amount,
            currency,
            exc.message,
        )
        payment_store.transition(
            payment, PaymentStatus.FAILED, failure_reason=exc.message
        )
        await session.commit()
        raise

    payment_store.associate_gateway_reference(payment, intent.id)
    await session.commit()
    logger.info(
        "Payment %s (%s) opened gateway intent %s", payment.id, parsed_type.value, intent.id
    )
    return intent.client_secret, payment.id


async def get_payment_for(
    session: AsyncSession, *, actor: Actor, payment_id: UUID
) -> Payment:
    payment = await payment_store.get_payment(session, payment_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    require_owner_or_admin(actor, payment.user_id)
    return payment


async def confirm_association(
    session: AsyncSession,
    *,
    actor: Actor,
    payment_id: UUID,
    gateway_reference_id: str,
) -> Payment:
    """Link a gateway reference to a payment the caller owns (set once)."""

    if not gateway_reference_id:
        raise ValidationError("gateway_reference_id is required")
    payment = await payment_store.get_payment(session, payment_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    if payment.user_id != actor.user_id:
        raise AuthorizationError("Not authorized")
    if payment_store.associate_gateway_reference(payment, gateway_reference_id):
        await session.commit()
    return payment
