"""Settlement policy administration."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.exceptions import NotFoundError
from app.schemas.policy import SettlementPolicyRead, SettlementPolicyUpdate
from app.security.permissions import Actor
from app.services import policy_service

router = APIRouter(prefix="/settlement-policy", tags=["settlement-policy"])


@router.get("", response_model=SettlementPolicyRead)
async def read_policy(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[Actor, Depends(deps.get_admin_actor)],
) -> SettlementPolicyRead:
    policy = await policy_service.get_policy(session)
    if policy is None:
        raise NotFoundError("Settlement policy is not configured")
    return SettlementPolicyRead.model_validate(policy)


@router.put("", response_model=SettlementPolicyRead)
async def update_policy(
    payload: SettlementPolicyUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[Actor, Depends(deps.get_admin_actor)],
) -> SettlementPolicyRead:
    policy = await policy_service.save_policy(
        session,
        deposit_tiers=[tier.as_stored() for tier in payload.deposit_tiers],
        forfeit_tiers=[tier.as_stored() for tier in payload.forfeit_tiers],
        winner_deadline_hours=payload.winner_deadline_hours,
    )
    return SettlementPolicyRead.model_validate(policy)
