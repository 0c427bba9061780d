"""Manual forfeit and refund of a winner's deposit."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import (
    AuthorizationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from app.models import (
    Auction,
    AuctionState,
    DepositStatus,
    Payment,
    PaymentStatus,
    PaymentType,
    PlatformRevenueEvent,
    UserRole,
    Wallet,
)
from app.security.permissions import Actor

pytestmark = pytest.mark.asyncio


async def _setup(seed, *, reserved: str = "500"):
    admin = await seed.user(role=UserRole.ADMIN)
    seller = await seed.user()
    winner = await seed.user()
    await seed.wallet(winner.id, available="100", reserved=reserved)
    auction = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        state=AuctionState.ENDED,
        deposit_status=DepositStatus.HELD,
    )
    deposit = await seed.payment(
        user_id=winner.id,
        payment_type=PaymentType.DEPOSIT,
        amount="500",
        auction_id=auction.id,
        status=PaymentStatus.SUCCEEDED,
        gateway_reference_id="pi_deposit",
    )
    return Actor.from_user(admin), winner, auction, deposit


async def test_forfeit_moves_reserved_to_revenue(engine, seed, sessionmaker) -> None:
    admin, winner, auction, deposit = await _setup(seed)

    result = await engine.forfeit_or_refund(
        admin,
        action="forfeit",
        auction_id=auction.id,
        user_id=winner.id,
        amount=Decimal("200"),
    )

    assert result.status == "forfeited"
    assert result.amount == Decimal("200.00")
    assert result.refund_id is None

    wallet = await seed.get(Wallet, winner.id)
    assert wallet.reserved == Decimal("300.00")
    assert wallet.available == Decimal("100.00")

    forfeit_payment = await seed.get(Payment, result.payment_id)
    assert forfeit_payment.type is PaymentType.FORFEIT
    assert forfeit_payment.related_payment_id == deposit.id
    assert (await seed.get(Payment, deposit.id)).status is PaymentStatus.FORFEITED

    stored = await seed.get(Auction, auction.id)
    assert stored.deposit_status is DepositStatus.FORFEITED
    assert stored.state is AuctionState.ENDED

    async with sessionmaker() as session:
        revenue = list((await session.execute(select(PlatformRevenueEvent))).scalars())
    assert [event.amount for event in revenue] == [Decimal("200.00")]

    with pytest.raises(NotFoundError):
        await engine.forfeit_or_refund(
            admin,
            action="forfeit",
            auction_id=auction.id,
            user_id=winner.id,
            amount=Decimal("50"),
        )


async def test_refund_calls_gateway_then_releases(engine, seed, gateway) -> None:
    admin, winner, auction, deposit = await _setup(seed)

    result = await engine.forfeit_or_refund(
        admin,
        action="REFUND",
        auction_id=auction.id,
        user_id=winner.id,
        amount=Decimal("500"),
    )

    assert result.status == "refunded"
    assert result.refund_id == "re_test_1"
    assert gateway.refunds == [
        {
            "id": "re_test_1",
            "payment_intent_id": "pi_deposit",
            "amount": Decimal("500.00"),
            "idempotency_seed": f"refund-{deposit.id}",
        }
    ]

    wallet = await seed.get(Wallet, winner.id)
    assert wallet.reserved == Decimal("0.00")
    assert wallet.available == Decimal("600.00")

    original = await seed.get(Payment, deposit.id)
    assert original.status is PaymentStatus.REFUNDED
    assert original.refund_id == "re_test_1"
    refund_payment = await seed.get(Payment, result.payment_id)
    assert refund_payment.type is PaymentType.REFUND
    assert refund_payment.related_payment_id == deposit.id


async def test_refund_larger_than_reserved_is_rejected(engine, seed, gateway) -> None:
    admin, winner, auction, _ = await _setup(seed, reserved="100")

    with pytest.raises(ValidationError):
        await engine.forfeit_or_refund(
            admin,
            action="refund",
            auction_id=auction.id,
            user_id=winner.id,
            amount=Decimal("150"),
        )
    assert gateway.refunds == []


async def test_gateway_refund_failure_leaves_ledger_untouched(
    engine, seed, gateway
) -> None:
    admin, winner, auction, deposit = await _setup(seed)
    gateway.fail_refund = "card network unavailable"

    with pytest.raises(ExternalServiceError):
        await engine.forfeit_or_refund(
            admin,
            action="refund",
            auction_id=auction.id,
            user_id=winner.id,
            amount=Decimal("100"),
        )

    assert (await seed.get(Wallet, winner.id)).reserved == Decimal("500.00")
    assert (await seed.get(Payment, deposit.id)).status is PaymentStatus.SUCCEEDED


async def test_members_cannot_settle(engine, seed) -> None:
    _, winner, auction, _ = await _setup(seed)

    with pytest.raises(AuthorizationError):
        await engine.forfeit_or_refund(
            Actor.from_user(winner),
            action="forfeit",
            auction_id=auction.id,
            user_id=winner.id,
            amount=Decimal("10"),
        )


async def test_unknown_action_and_missing_deposit(engine, seed) -> None:
    admin_user = await seed.user(role=UserRole.ADMIN)
    winner = await seed.user()
    auction = await seed.auction(seller_id=None, winner_id=winner.id)
    admin = Actor.from_user(admin_user)

    with pytest.raises(ValidationError):
        await engine.forfeit_or_refund(
            admin,
            action="void",
            auction_id=auction.id,
            user_id=winner.id,
            amount=Decimal("10"),
        )
    with pytest.raises(NotFoundError):
        await engine.forfeit_or_refund(
            admin,
            action="refund",
            auction_id=auction.id,
            user_id=winner.id,
            amount=Decimal("10"),
        )
