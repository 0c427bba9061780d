"""Schemas for operator settlement actions and sweep reports."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class ForfeitOrRefundRequest(BaseModel):
    """Admin request to forfeit or refund a winner's deposit."""

    action: Literal["forfeit", "refund"]
    auction_id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal = Field(gt=Decimal("0"))


class ForfeitOrRefundResponse(BaseModel):
    status: str
    payment_id: uuid.UUID
    amount: Decimal
    refund_id: str | None = None


class SweepReportRead(BaseModel):
    """Auction ids touched by one sweep run."""

    name: str
    processed: list[uuid.UUID] = Field(default_factory=list)
    skipped: list[uuid.UUID] = Field(default_factory=list)
    failed: list[uuid.UUID] = Field(default_factory=list)
