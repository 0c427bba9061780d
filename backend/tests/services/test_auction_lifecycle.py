"""Forward-only auction state machine and write-once settlement fields."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from app.models import Auction, AuctionState, CommissionStatus, DepositStatus
from app.services import auction_lifecycle
from app.services.auction_lifecycle import DepositOutcome

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _auction(**fields) -> Auction:
    defaults = dict(
        id=uuid.uuid4(),
        state=AuctionState.ACTIVE,
        current_price=Decimal("6000"),
        current_winner_id=uuid.uuid4(),
        ends_at=NOW - timedelta(minutes=1),
        deposit_status=DepositStatus.NONE,
        commission_status=CommissionStatus.NONE,
        buyer_commission_paid=False,
        seller_commission_paid=False,
        listing_fee_paid=False,
        buyer_confirmed_purchase=False,
        winner_contact_released=False,
    )
    defaults.update(fields)
    return Auction(**defaults)


def test_states_never_move_backwards() -> None:
    auction = _auction(state=AuctionState.ENDED)
    assert not auction_lifecycle.activate(auction, NOW)
    assert not auction_lifecycle.close_without_winner(auction, NOW)
    assert auction.state is AuctionState.ENDED


def test_skipping_a_state_is_rejected() -> None:
    auction = _auction(state=AuctionState.DRAFT)
    assert not auction_lifecycle.activate(auction, NOW)
    assert auction.state is AuctionState.DRAFT


def test_close_with_deposit_sets_fields_once() -> None:
    auction = _auction()
    outcome = DepositOutcome(DepositStatus.HELD, Decimal("480.00"), Decimal("480.00"))

    assert auction_lifecycle.close_with_deposit(
        auction, outcome, deadline_hours=48, now=NOW
    )
    assert auction.state is AuctionState.ENDED
    assert auction.final_price == Decimal("6000")
    assert auction.deposit_status is DepositStatus.HELD
    assert auction.winner_deadline_at == NOW - timedelta(minutes=1) + timedelta(hours=48)

    second = DepositOutcome(DepositStatus.INSUFFICIENT, Decimal("1"), Decimal("0"))
    assert not auction_lifecycle.close_with_deposit(
        auction, second, deadline_hours=1, now=NOW
    )
    assert auction.deposit_required == Decimal("480.00")
    assert auction.deposit_status is DepositStatus.HELD


def test_due_checks() -> None:
    assert auction_lifecycle.is_due_for_close(_auction(), NOW)
    assert not auction_lifecycle.is_due_for_close(
        _auction(ends_at=NOW + timedelta(seconds=1)), NOW
    )
    # Naive timestamps (as SQLite returns them) are read as UTC.
    naive = _auction(ends_at=(NOW - timedelta(minutes=1)).replace(tzinfo=None))
    assert auction_lifecycle.is_due_for_close(naive, NOW)

    ended = _auction(state=AuctionState.ENDED, winner_deadline_at=NOW)
    assert auction_lifecycle.is_due_for_deadline(ended, NOW)
    ended.buyer_confirmed_purchase = True
    assert not auction_lifecycle.is_due_for_deadline(ended, NOW)


def test_mark_no_response_revokes_contact_and_forfeits() -> None:
    auction = _auction(state=AuctionState.ENDED, winner_contact_released=True)
    assert auction_lifecycle.mark_no_response(
        auction, forfeited=Decimal("300.00"), now=NOW
    )
    assert auction.state is AuctionState.ENDED_NO_RESPONSE
    assert auction.deposit_status is DepositStatus.FORFEITED
    assert auction.commission_status is CommissionStatus.FORFEITED
    assert auction.forfeit_amount == Decimal("300.00")
    assert auction.winner_contact_released is False
    assert not auction_lifecycle.mark_no_response(
        auction, forfeited=Decimal("1"), now=NOW
    )


def test_commission_status_requires_both_sides() -> None:
    auction = _auction(state=AuctionState.ENDED)
    buyer_payment, seller_payment = uuid.uuid4(), uuid.uuid4()

    assert auction_lifecycle.record_commission(
        auction, side="seller", payment_id=seller_payment, now=NOW
    )
    assert auction.commission_status is CommissionStatus.SELLER_PAID
    assert auction.winner_contact_released is False

    assert auction_lifecycle.record_commission(
        auction, side="buyer", payment_id=buyer_payment, now=NOW
    )
    assert auction.commission_status is CommissionStatus.PAID
    assert auction.winner_contact_released is True

    assert not auction_lifecycle.record_commission(
        auction, side="buyer", payment_id=uuid.uuid4(), now=NOW
    )
    assert auction.buyer_commission_payment_id == buyer_payment


def test_commission_after_forfeit_keeps_forfeited_status() -> None:
    auction = _auction(
        state=AuctionState.ENDED_NO_RESPONSE,
        commission_status=CommissionStatus.FORFEITED,
    )
    assert auction_lifecycle.record_commission(
        auction, side="buyer", payment_id=uuid.uuid4(), now=NOW
    )
    assert auction.commission_status is CommissionStatus.FORFEITED
    assert auction.buyer_commission_paid is True
    assert auction.winner_contact_released is False


def test_listing_fee_then_activation() -> None:
    auction = _auction(state=AuctionState.APPROVED_AWAITING_PAYMENT)
    payment_id = uuid.uuid4()
    assert auction_lifecycle.record_listing_fee(auction, payment_id)
    assert not auction_lifecycle.record_listing_fee(auction, uuid.uuid4())
    assert auction_lifecycle.activate(auction, NOW)
    assert auction.state is AuctionState.ACTIVE
    assert auction.listing_fee_payment_id == payment_id
