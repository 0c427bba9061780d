"""Append-only platform revenue records."""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class RevenueType(str, enum.Enum):
    BUYER_COMMISSION = "buyer_commission"
    SELLER_COMMISSION = "seller_commission"
    FORFEIT = "forfeit"


class RevenueSource(str, enum.Enum):
    COMMISSION = "commission"
    FORFEIT = "forfeit"


class PlatformRevenueEvent(Base):
    """Money captured by the platform; never updated after insert."""

    __tablename__ = "platform_revenue_events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    auction_id: Mapped[uuid.UUID | None] = mapped_column(index=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column()
    payment_id: Mapped[uuid.UUID | None] = mapped_column()
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(12), nullable=False, default="AED")
    type: Mapped[RevenueType] = mapped_column(Enum(RevenueType), nullable=False)
    source: Mapped[RevenueSource] = mapped_column(Enum(RevenueSource), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="paid")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
