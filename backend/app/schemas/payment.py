"""Payment schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.payment import PaymentStatus, PaymentType


class PaymentIntentCreate(BaseModel):
    """Request payload to open a charge intent."""

    type: str = Field(min_length=1)
    amount: Decimal
    currency: str | None = None
    auction_id: uuid.UUID | None = None


class PaymentIntentCreateResponse(BaseModel):
    """Client secret for the frontend plus the internal payment id."""

    client_secret: str
    payment_id: uuid.UUID


class PaymentAssociation(BaseModel):
    """Request payload linking a gateway reference to a payment."""

    gateway_reference_id: str = Field(min_length=1, max_length=255)


class PaymentRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: PaymentType
    auction_id: uuid.UUID | None = None
    amount: Decimal
    currency: str
    gateway_reference_id: str | None = None
    status: PaymentStatus
    refund_id: str | None = None
    related_payment_id: uuid.UUID | None = None
    failure_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WebhookAck(BaseModel):
    """Webhook acknowledgement."""

    received: bool = True
    status: str
