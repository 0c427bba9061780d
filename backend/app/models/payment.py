"""Payment records and raw gateway events."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from app.db.base import Base
from app.models.mixins import TimestampMixin


JSONB_TYPE = JSONB(astext_type=Text()).with_variant(JSON(), "sqlite")


class PaymentType(str, enum.Enum):
    """Kinds of monetary events recorded as payments."""

    DEPOSIT = "deposit"
    LISTING_FEE = "listing_fee"
    BUYER_COMMISSION = "buyer_commission"
    SELLER_COMMISSION = "seller_commission"
    FORFEIT = "forfeit"
    REFUND = "refund"


CHARGEABLE_TYPES = frozenset(
    {
        PaymentType.DEPOSIT,
        PaymentType.LISTING_FEE,
        PaymentType.BUYER_COMMISSION,
        PaymentType.SELLER_COMMISSION,
    }
)


class PaymentStatus(str, enum.Enum):
    """Lifecycle states for payments."""

    CREATED = "created"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FORFEITED = "forfeited"
    REFUNDED = "refunded"


class Payment(TimestampMixin, Base):
    """One attempted charge or monetary event."""

    __tablename__ = "payments"
    __table_args__ = (
        Index(
            "ix_payments_owner_auction_type_status",
            "user_id",
            "auction_id",
            "type",
            "status",
        ),
        Index("ix_payments_gateway_reference_id", "gateway_reference_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[PaymentType] = mapped_column(Enum(PaymentType), nullable=False)
    auction_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("auctions.id", ondelete="SET NULL")
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(12), nullable=False, default="aed")
    gateway_reference_id: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), nullable=False, default=PaymentStatus.CREATED
    )
    refund_id: Mapped[str | None] = mapped_column(String(255))
    related_payment_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("payments.id", ondelete="SET NULL")
    )
    failure_reason: Mapped[str | None] = mapped_column(Text())

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}


class PaymentEvent(Base):
    """Raw provider webhook events for auditing and idempotency."""

    __tablename__ = "payment_events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    provider_event_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(120), nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),  # type: ignore[arg-type]
    )
    raw: Mapped[dict[str, Any]] = mapped_column(JSONB_TYPE, nullable=False)
