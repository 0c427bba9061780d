"""Wallet read endpoints for the signed-in user."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.wallet import WalletMoveRead, WalletRead
from app.security.permissions import Actor
from app.services import wallet_service

router = APIRouter(prefix="/wallets", tags=["wallets"])

_ZERO = Decimal("0.00")


@router.get("/me", response_model=WalletRead)
async def read_my_wallet(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> WalletRead:
    wallet = await wallet_service.get_wallet(session, actor.user_id)
    if wallet is None:
        return WalletRead(
            user_id=actor.user_id,
            available=_ZERO,
            reserved=_ZERO,
            locked=_ZERO,
            total=_ZERO,
        )
    return WalletRead.model_validate(wallet)


@router.get("/me/moves", response_model=list[WalletMoveRead])
async def list_my_wallet_moves(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> list[WalletMoveRead]:
    moves = await wallet_service.list_moves(session, actor.user_id)
    return [WalletMoveRead.model_validate(move) for move in moves]
