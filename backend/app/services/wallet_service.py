"""Wallet ledger: the only code allowed to move funds between buckets.

Every operation runs inside the caller's transaction, touches exactly one
wallet row and appends one ``WalletMove`` journal entry. The ledger does not
deduplicate; callers guard on payment/auction state before invoking it.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConsistencyViolationError,
    InsufficientFundsError,
    ValidationError,
)
from app.models import Wallet, WalletMove, WalletMoveKind
from app.services.tier_rules import ZERO, to_money

logger = logging.getLogger(__name__)


async def get_wallet(session: AsyncSession, user_id: UUID) -> Wallet | None:
    return await session.get(Wallet, user_id)


async def get_or_create_wallet(session: AsyncSession, user_id: UUID) -> Wallet:
    """Return the user's wallet, inserting an empty one on first touch."""

    wallet = await session.get(Wallet, user_id)
    if wallet is None:
        wallet = Wallet(
            user_id=user_id,
            available=Decimal("0.00"),
            reserved=Decimal("0.00"),
            locked=Decimal("0.00"),
        )
        session.add(wallet)
        # A concurrent creator makes this flush raise IntegrityError; the
        # transaction runner retries and the next attempt reads their row.
        await session.flush()
    return wallet


def _normalize(amount: Decimal) -> Decimal:
    normalized = to_money(amount)
    if normalized < ZERO:
        raise ValidationError("Ledger amounts must not be negative")
    return normalized


def _assert_non_negative(wallet: Wallet) -> None:
    for bucket in ("available", "reserved", "locked"):
        if getattr(wallet, bucket) < ZERO:
            logger.critical(
                "Wallet %s bucket %s went negative (%s)",
                wallet.user_id,
                bucket,
                getattr(wallet, bucket),
            )
            raise ConsistencyViolationError(
                f"Wallet {wallet.user_id} {bucket} balance would be negative"
            )


def _journal(
    session: AsyncSession,
    wallet: Wallet,
    kind: WalletMoveKind,
    amount: Decimal,
    *,
    auction_id: UUID | None,
    payment_id: UUID | None,
    note: str | None,
) -> None:
    _assert_non_negative(wallet)
    session.add(
        WalletMove(
            user_id=wallet.user_id,
            kind=kind,
            amount=amount,
            available_after=wallet.available,
            reserved_after=wallet.reserved,
            auction_id=auction_id,
            payment_id=payment_id,
            note=note,
        )
    )


async def reserve(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    *,
    auction_id: UUID | None = None,
    payment_id: UUID | None = None,
) -> Decimal:
    """Move ``amount`` from available to reserved."""

    normalized = _normalize(amount)
    wallet = await get_or_create_wallet(session, user_id)
    if wallet.available < normalized:
        raise InsufficientFundsError(
            f"Available balance {wallet.available} cannot cover {normalized}"
        )
    if normalized == ZERO:
        return ZERO
    wallet.available = to_money(wallet.available - normalized)
    wallet.reserved = to_money(wallet.reserved + normalized)
    _journal(
        session,
        wallet,
        WalletMoveKind.RESERVE,
        normalized,
        auction_id=auction_id,
        payment_id=payment_id,
        note="deposit hold",
    )
    return normalized


async def release_to_available(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    *,
    auction_id: UUID | None = None,
    payment_id: UUID | None = None,
) -> Decimal:
    """Move ``amount`` from reserved back to available."""

    normalized = _normalize(amount)
    wallet = await get_or_create_wallet(session, user_id)
    if wallet.reserved < normalized:
        logger.critical(
            "Release of %s exceeds reserved %s for wallet %s",
            normalized,
            wallet.reserved,
            user_id,
        )
        raise ConsistencyViolationError(
            f"Cannot release {normalized}; only {wallet.reserved} is reserved"
        )
    if normalized == ZERO:
        return ZERO
    wallet.reserved = to_money(wallet.reserved - normalized)
    wallet.available = to_money(wallet.available + normalized)
    _journal(
        session,
        wallet,
        WalletMoveKind.RELEASE,
        normalized,
        auction_id=auction_id,
        payment_id=payment_id,
        note="deposit release",
    )
    return normalized


async def forfeit(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    *,
    auction_id: UUID | None = None,
    payment_id: UUID | None = None,
) -> Decimal:
    """Remove up to ``amount`` from reserved; returns what was actually taken."""

    requested = _normalize(amount)
    wallet = await get_or_create_wallet(session, user_id)
    taken = min(requested, wallet.reserved)
    if taken <= ZERO:
        return ZERO
    wallet.reserved = to_money(wallet.reserved - taken)
    _journal(
        session,
        wallet,
        WalletMoveKind.FORFEIT,
        taken,
        auction_id=auction_id,
        payment_id=payment_id,
        note=None if taken == requested else f"requested {requested}",
    )
    return taken


async def credit_available(
    session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    *,
    auction_id: UUID | None = None,
    payment_id: UUID | None = None,
    note: str | None = None,
) -> Decimal:
    """Increase available funds (deposit top-ups, refund credits)."""

    normalized = _normalize(amount)
    wallet = await get_or_create_wallet(session, user_id)
    if normalized == ZERO:
        return ZERO
    wallet.available = to_money(wallet.available + normalized)
    _journal(
        session,
        wallet,
        WalletMoveKind.CREDIT,
        normalized,
        auction_id=auction_id,
        payment_id=payment_id,
        note=note,
    )
    return normalized


async def list_moves(session: AsyncSession, user_id: UUID) -> list[WalletMove]:
    stmt = (
        select(WalletMove)
        .where(WalletMove.user_id == user_id)
        .order_by(WalletMove.created_at)
    )
    return list((await session.execute(stmt)).scalars())
