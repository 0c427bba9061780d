"""Payments API: charge intents and gateway reference association."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.payment import (
    PaymentAssociation,
    PaymentIntentCreate,
    PaymentIntentCreateResponse,
    PaymentRead,
)
from app.security.permissions import Actor
from app.services import payments_service
from app.services.settlement_engine import SettlementEngine

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/intents",
    response_model=PaymentIntentCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_intent(
    payload: PaymentIntentCreate,
    engine: Annotated[SettlementEngine, Depends(deps.get_settlement_engine)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> PaymentIntentCreateResponse:
    client_secret, payment_id = await engine.create_charge_intent(
        actor,
        payment_type=payload.type,
        amount=payload.amount,
        currency=payload.currency,
        auction_id=payload.auction_id,
    )
    return PaymentIntentCreateResponse(client_secret=client_secret, payment_id=payment_id)


@router.post("/{payment_id}/association", response_model=PaymentRead)
async def confirm_payment_association(
    payment_id: uuid.UUID,
    payload: PaymentAssociation,
    engine: Annotated[SettlementEngine, Depends(deps.get_settlement_engine)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> PaymentRead:
    payment = await engine.confirm_association(
        actor,
        payment_id=payment_id,
        gateway_reference_id=payload.gateway_reference_id,
    )
    return PaymentRead.model_validate(payment)


@router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment(
    payment_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> PaymentRead:
    payment = await payments_service.get_payment_for(
        session, actor=actor, payment_id=payment_id
    )
    return PaymentRead.model_validate(payment)
