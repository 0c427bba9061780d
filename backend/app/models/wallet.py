"""Per-user deposit wallet and its move journal."""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class Wallet(TimestampMixin, Base):
    """Three-bucket balance record; one row per user, created lazily."""

    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("available >= 0", name="ck_wallets_available_non_negative"),
        CheckConstraint("reserved >= 0", name="ck_wallets_reserved_non_negative"),
        CheckConstraint("locked >= 0", name="ck_wallets_locked_non_negative"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    available: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    reserved: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    locked: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total(self) -> Decimal:
        return self.available + self.reserved + self.locked


class WalletMoveKind(str, enum.Enum):
    """Ledger operations that may change a wallet."""

    CREDIT = "credit"
    RESERVE = "reserve"
    RELEASE = "release"
    FORFEIT = "forfeit"


class WalletMove(Base):
    """Append-only journal of every bucket change applied to a wallet."""

    __tablename__ = "wallet_moves"
    __table_args__ = (Index("ix_wallet_moves_user_created", "user_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wallets.user_id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[WalletMoveKind] = mapped_column(Enum(WalletMoveKind), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    available_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reserved_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    auction_id: Mapped[uuid.UUID | None] = mapped_column()
    payment_id: Mapped[uuid.UUID | None] = mapped_column()
    note: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
