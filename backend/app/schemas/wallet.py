"""Wallet schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.models.wallet import WalletMoveKind


class WalletRead(BaseModel):
    user_id: uuid.UUID
    available: Decimal
    reserved: Decimal
    locked: Decimal
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class WalletMoveRead(BaseModel):
    id: uuid.UUID
    kind: WalletMoveKind
    amount: Decimal
    available_after: Decimal
    reserved_after: Decimal
    auction_id: uuid.UUID | None = None
    payment_id: uuid.UUID | None = None
    note: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
