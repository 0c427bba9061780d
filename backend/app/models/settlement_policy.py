"""Admin-editable settlement policy (deposit/forfeit tiers, deadline)."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from app.db.base import Base
from app.models.mixins import TimestampMixin

JSONB_TYPE = JSONB().with_variant(JSON(), "sqlite")

DEFAULT_POLICY_ID = "main"
DEFAULT_WINNER_DEADLINE_HOURS = 48


class SettlementPolicy(TimestampMixin, Base):
    """Tier lists are stored as ``[{"min": .., "max": .., "rate": ..}]``."""

    __tablename__ = "settlement_policies"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=DEFAULT_POLICY_ID)
    deposit_tiers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, nullable=False, default=list
    )
    forfeit_tiers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, nullable=False, default=list
    )
    winner_deadline_hours: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_WINNER_DEADLINE_HOURS
    )
