"""Delivery contract created once an auction closes with a winner."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

CONTRACT_VERSION = "1.0"


class Contract(Base):
    """Frozen at creation; keyed by the auction it settles."""

    __tablename__ = "contracts"

    auction_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("auctions.id", ondelete="CASCADE"), primary_key=True
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    buyer_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    terms_accepted_seller: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    terms_accepted_buyer: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    contract_version: Mapped[str] = mapped_column(
        String(16), nullable=False, default=CONTRACT_VERSION
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
