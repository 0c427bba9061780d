"""Wallet ledger moves and their journal."""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.core.exceptions import (
    ConsistencyViolationError,
    InsufficientFundsError,
    ValidationError,
)
from app.models import Wallet, WalletMoveKind
from app.services import wallet_service

pytestmark = pytest.mark.asyncio


async def test_get_or_create_wallet_starts_at_zero(sessionmaker, seed) -> None:
    user = await seed.user()
    async with sessionmaker() as session:
        wallet = await wallet_service.get_or_create_wallet(session, user.id)
        await session.commit()
    assert wallet.available == Decimal("0")
    assert wallet.reserved == Decimal("0")
    assert wallet.total == Decimal("0")


async def test_reserve_moves_available_to_reserved(sessionmaker, seed) -> None:
    user = await seed.user()
    await seed.wallet(user.id, available="1000")

    async with sessionmaker() as session:
        held = await wallet_service.reserve(session, user.id, Decimal("480"))
        await session.commit()

    assert held == Decimal("480.00")
    wallet = await seed.get(Wallet, user.id)
    assert wallet.available == Decimal("520.00")
    assert wallet.reserved == Decimal("480.00")

    async with sessionmaker() as session:
        moves = await wallet_service.list_moves(session, user.id)
    assert [move.kind for move in moves] == [WalletMoveKind.RESERVE]
    assert moves[0].available_after == Decimal("520.00")


async def test_reserve_beyond_available_raises(sessionmaker, seed) -> None:
    user = await seed.user()
    await seed.wallet(user.id, available="100")
    async with sessionmaker() as session:
        with pytest.raises(InsufficientFundsError):
            await wallet_service.reserve(session, user.id, Decimal("100.01"))


async def test_release_returns_funds(sessionmaker, seed) -> None:
    user = await seed.user()
    await seed.wallet(user.id, available="0", reserved="300")
    async with sessionmaker() as session:
        await wallet_service.release_to_available(session, user.id, Decimal("200"))
        await session.commit()
    wallet = await seed.get(Wallet, user.id)
    assert wallet.available == Decimal("200.00")
    assert wallet.reserved == Decimal("100.00")


async def test_release_beyond_reserved_is_a_consistency_violation(
    sessionmaker, seed
) -> None:
    user = await seed.user()
    await seed.wallet(user.id, reserved="50")
    async with sessionmaker() as session:
        with pytest.raises(ConsistencyViolationError):
            await wallet_service.release_to_available(session, user.id, Decimal("60"))


async def test_forfeit_is_capped_by_reserved(sessionmaker, seed) -> None:
    user = await seed.user()
    await seed.wallet(user.id, available="10", reserved="300")
    async with sessionmaker() as session:
        taken = await wallet_service.forfeit(session, user.id, Decimal("500"))
        await session.commit()
    assert taken == Decimal("300.00")
    wallet = await seed.get(Wallet, user.id)
    assert wallet.reserved == Decimal("0.00")
    assert wallet.available == Decimal("10.00")


async def test_forfeit_with_nothing_reserved_is_noop(sessionmaker, seed) -> None:
    user = await seed.user()
    async with sessionmaker() as session:
        taken = await wallet_service.forfeit(session, user.id, Decimal("25"))
        await session.commit()
        moves = await wallet_service.list_moves(session, user.id)
    assert taken == Decimal("0")
    assert moves == []


async def test_negative_amounts_are_rejected(sessionmaker, seed) -> None:
    user = await seed.user()
    async with sessionmaker() as session:
        with pytest.raises(ValidationError):
            await wallet_service.credit_available(session, user.id, Decimal("-1"))


async def test_journal_accounts_for_every_bucket(sessionmaker, seed) -> None:
    user = await seed.user()
    async with sessionmaker() as session:
        await wallet_service.credit_available(session, user.id, Decimal("700"))
        await wallet_service.reserve(session, user.id, Decimal("400"))
        await wallet_service.forfeit(session, user.id, Decimal("150"))
        await wallet_service.release_to_available(session, user.id, Decimal("100"))
        await wallet_service.credit_available(session, user.id, Decimal("25.50"))
        await wallet_service.forfeit(session, user.id, Decimal("500"))
        await session.commit()
        moves = await wallet_service.list_moves(session, user.id)

    available_delta = {
        WalletMoveKind.CREDIT: Decimal("1"),
        WalletMoveKind.RESERVE: Decimal("-1"),
        WalletMoveKind.RELEASE: Decimal("1"),
        WalletMoveKind.FORFEIT: Decimal("0"),
    }
    reserved_delta = {
        WalletMoveKind.CREDIT: Decimal("0"),
        WalletMoveKind.RESERVE: Decimal("1"),
        WalletMoveKind.RELEASE: Decimal("-1"),
        WalletMoveKind.FORFEIT: Decimal("-1"),
    }
    total_delta = {
        WalletMoveKind.CREDIT: Decimal("1"),
        WalletMoveKind.RESERVE: Decimal("0"),
        WalletMoveKind.RELEASE: Decimal("0"),
        WalletMoveKind.FORFEIT: Decimal("-1"),
    }

    wallet = await seed.get(Wallet, user.id)
    assert sorted(move.kind.value for move in moves) == [
        "credit",
        "credit",
        "forfeit",
        "forfeit",
        "release",
        "reserve",
    ]
    assert wallet.available == sum(available_delta[m.kind] * m.amount for m in moves)
    assert wallet.reserved == sum(reserved_delta[m.kind] * m.amount for m in moves)
    assert wallet.available + wallet.reserved + wallet.locked == sum(
        total_delta[m.kind] * m.amount for m in moves
    )
    assert wallet.available == Decimal("425.50")
    assert wallet.reserved == Decimal("0.00")
    forfeited = sorted(m.amount for m in moves if m.kind is WalletMoveKind.FORFEIT)
    assert forfeited == [Decimal("150.00"), Decimal("150.00")]
