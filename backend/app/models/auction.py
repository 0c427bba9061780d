"""Auction model and its settlement fields."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class AuctionState(str, enum.Enum):
    """Lifecycle states, listed in forward order."""

    DRAFT = "DRAFT"
    APPROVED_AWAITING_PAYMENT = "APPROVED_AWAITING_PAYMENT"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    ENDED_NO_RESPONSE = "ENDED_NO_RESPONSE"


class DepositStatus(str, enum.Enum):
    """Outcome of the winner deposit hold."""

    NONE = "none"
    HELD = "held"
    WAIVED = "waived"
    INSUFFICIENT = "insufficient"
    FORFEITED = "forfeited"


class CommissionStatus(str, enum.Enum):
    """Aggregate buyer/seller commission state."""

    NONE = "none"
    BUYER_PAID = "buyer_paid"
    SELLER_PAID = "seller_paid"
    PAID = "paid"
    FORFEITED = "forfeited"


class Auction(TimestampMixin, Base):
    """A listed item and everything the settlement engine writes about it."""

    __tablename__ = "auctions"
    __table_args__ = (
        Index("ix_auctions_state_ends_at", "state", "ends_at"),
        Index("ix_auctions_state_winner_deadline_at", "state", "winner_deadline_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    seller_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    state: Mapped[AuctionState] = mapped_column(
        Enum(AuctionState), nullable=False, default=AuctionState.DRAFT
    )

    start_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    reserve_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    current_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    current_winner_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    final_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    listing_fee_paid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    listing_fee_payment_id: Mapped[uuid.UUID | None] = mapped_column()

    deposit_required: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    deposit_held: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    deposit_status: Mapped[DepositStatus] = mapped_column(
        Enum(DepositStatus), nullable=False, default=DepositStatus.NONE
    )
    winner_deadline_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    winner_deadline_hours: Mapped[int | None] = mapped_column(Integer)
    buyer_confirmed_purchase: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    forfeit_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    forfeited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    buyer_commission_paid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    buyer_commission_payment_id: Mapped[uuid.UUID | None] = mapped_column()
    buyer_commission_paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    seller_commission_paid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    seller_commission_payment_id: Mapped[uuid.UUID | None] = mapped_column()
    seller_commission_paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    commission_status: Mapped[CommissionStatus] = mapped_column(
        Enum(CommissionStatus), nullable=False, default=CommissionStatus.NONE
    )
    winner_contact_released: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}
