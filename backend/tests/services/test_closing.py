"""Closing ended auctions through the settlement engine."""

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

import logging

import pytest
from sqlalchemy import func, select

from app.core.exceptions import NotFoundError
from app.models import (
    CONTRACT_VERSION,
    Auction,
    AuctionState,
    Contract,
    DepositStatus,
    Wallet,
    WalletMove,
)
from app.services import closing_service
from app.services.auction_lifecycle import as_utc

pytestmark = pytest.mark.asyncio


async def _count(sessionmaker, model) -> int:
    async with sessionmaker() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def test_close_holds_deposit_when_wallet_covers_it(
    engine, seed, sessionmaker, clock
) -> None:
    await seed.policy()
    seller = await seed.user()
    winner = await seed.user()
    await seed.wallet(winner.id, available="1000")
    auction = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        current_price="6000",
        ends_at=clock.now - timedelta(minutes=5),
    )

    result = await engine.close_auction(auction.id)

    assert result.closed
    assert result.deposit_status is DepositStatus.HELD
    stored = await seed.get(Auction, auction.id)
    assert stored.state is AuctionState.ENDED
    assert stored.final_price == Decimal("6000.00")
    assert stored.deposit_required == Decimal("480.00")
    assert stored.deposit_held == Decimal("480.00")
    assert as_utc(stored.winner_deadline_at) == as_utc(stored.ends_at) + timedelta(hours=48)

    wallet = await seed.get(Wallet, winner.id)
    assert wallet.available == Decimal("520.00")
    assert wallet.reserved == Decimal("480.00")

    contract = await seed.get(Contract, auction.id)
    assert contract.buyer_id == winner.id
    assert contract.seller_id == seller.id
    assert contract.contract_version == CONTRACT_VERSION
    assert contract.terms_accepted_buyer is False


async def test_insufficient_wallet_still_ends_and_creates_contract(
    engine, seed, sessionmaker, clock
) -> None:
    await seed.policy()
    seller = await seed.user()
    winner = await seed.user()
    await seed.wallet(winner.id, available="400")
    auction = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        current_price="6000",
        ends_at=clock.now - timedelta(minutes=5),
    )

    await engine.close_auction(auction.id)

    stored = await seed.get(Auction, auction.id)
    assert stored.state is AuctionState.ENDED
    assert stored.deposit_status is DepositStatus.INSUFFICIENT
    assert stored.deposit_required == Decimal("480.00")
    assert stored.deposit_held == Decimal("0.00")
    wallet = await seed.get(Wallet, winner.id)
    assert wallet.available == Decimal("400.00")
    assert wallet.reserved == Decimal("0.00")
    assert await _count(sessionmaker, WalletMove) == 0
    assert await seed.get(Contract, auction.id) is not None


async def test_vip_winner_is_waived(engine, seed, clock) -> None:
    await seed.policy()
    seller = await seed.user()
    winner = await seed.user(vip_deposit_waived=True)
    auction = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        ends_at=clock.now - timedelta(minutes=1),
    )

    await engine.close_auction(auction.id)

    stored = await seed.get(Auction, auction.id)
    assert stored.deposit_status is DepositStatus.WAIVED
    assert stored.deposit_held == Decimal("0.00")
    wallet = await seed.get(Wallet, winner.id)
    assert wallet is None


async def test_closing_twice_is_idempotent(engine, seed, sessionmaker, clock) -> None:
    await seed.policy()
    seller = await seed.user()
    winner = await seed.user()
    await seed.wallet(winner.id, available="1000")
    auction = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        ends_at=clock.now - timedelta(minutes=5),
    )

    first = await engine.close_auction(auction.id)
    second = await engine.close_auction(auction.id)

    assert first.closed
    assert not second.closed
    wallet = await seed.get(Wallet, winner.id)
    assert wallet.reserved == Decimal("480.00")
    assert await _count(sessionmaker, WalletMove) == 1
    assert await _count(sessionmaker, Contract) == 1


async def test_auction_without_winner_just_ends(engine, seed, sessionmaker, clock) -> None:
    await seed.policy()
    seller = await seed.user()
    auction = await seed.auction(
        seller_id=seller.id, ends_at=clock.now - timedelta(minutes=1)
    )

    result = await engine.close_auction(auction.id)

    assert result.closed
    stored = await seed.get(Auction, auction.id)
    assert stored.state is AuctionState.ENDED
    assert stored.deposit_status is DepositStatus.NONE
    assert await _count(sessionmaker, Contract) == 0


async def test_auction_not_yet_due_is_skipped(engine, seed, clock) -> None:
    await seed.policy()
    seller = await seed.user()
    auction = await seed.auction(
        seller_id=seller.id, ends_at=clock.now + timedelta(minutes=1)
    )
    result = await engine.close_auction(auction.id)
    assert not result.closed
    assert (await seed.get(Auction, auction.id)).state is AuctionState.ACTIVE


async def test_unknown_auction_raises_not_found(engine, seed) -> None:
    await seed.policy()
    with pytest.raises(NotFoundError):
        await engine.close_auction(uuid.uuid4())


async def test_sweep_closes_due_auctions_only(engine, seed, clock) -> None:
    await seed.policy()
    seller = await seed.user()
    winner = await seed.user()
    await seed.wallet(winner.id, available="5000")
    due = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        current_price="1000",
        ends_at=clock.now - timedelta(minutes=1),
    )
    later = await seed.auction(
        seller_id=seller.id, ends_at=clock.now + timedelta(hours=1)
    )
    draft = await seed.auction(
        seller_id=seller.id,
        state=AuctionState.DRAFT,
        ends_at=clock.now - timedelta(hours=1),
    )

    report = await engine.close_ended_auctions()

    assert report.processed == [due.id]
    assert report.failed == []
    assert (await seed.get(Auction, later.id)).state is AuctionState.ACTIVE
    assert (await seed.get(Auction, draft.id)).state is AuctionState.DRAFT
    wallet = await seed.get(Wallet, winner.id)
    assert wallet.reserved == Decimal("50.00")


async def test_sweep_without_policy_processes_nothing(engine, seed, clock) -> None:
    seller = await seed.user()
    auction = await seed.auction(
        seller_id=seller.id, ends_at=clock.now - timedelta(minutes=1)
    )

    report = await engine.close_ended_auctions()

    assert report.processed == [] and report.failed == []
    assert (await seed.get(Auction, auction.id)).state is AuctionState.ACTIVE


async def test_failing_auction_does_not_block_the_sweep(
    engine, seed, clock, monkeypatch, caplog
) -> None:
    await seed.policy()
    seller = await seed.user()
    winner = await seed.user()
    await seed.wallet(winner.id, available="5000")
    broken = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        current_price="1000",
        ends_at=clock.now - timedelta(hours=2),
    )
    healthy = await seed.auction(
        seller_id=seller.id,
        winner_id=winner.id,
        current_price="1000",
        ends_at=clock.now - timedelta(minutes=1),
    )
    close_auction = closing_service.close_auction

    async def flaky_close(session, auction_id, **kwargs):
        if auction_id == broken.id:
            raise RuntimeError("corrupt auction row")
        return await close_auction(session, auction_id, **kwargs)

    monkeypatch.setattr(closing_service, "close_auction", flaky_close)

    with caplog.at_level(logging.ERROR):
        report = await engine.close_ended_auctions()

    assert report.failed == [broken.id]
    assert report.processed == [healthy.id]
    assert str(broken.id) in caplog.text
    assert (await seed.get(Auction, broken.id)).state is AuctionState.ACTIVE
    assert (await seed.get(Auction, healthy.id)).state is AuctionState.ENDED
    assert (await seed.get(Wallet, winner.id)).reserved == Decimal("50.00")
