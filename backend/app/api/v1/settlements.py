"""Operator settlement endpoints: manual forfeit/refund and on-demand sweeps."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas.settlement import (
    ForfeitOrRefundRequest,
    ForfeitOrRefundResponse,
    SweepReportRead,
)
from app.security.permissions import Actor
from app.services.settlement_engine import SettlementEngine, SweepReport

router = APIRouter(prefix="/settlements", tags=["settlements"])


def _report(report: SweepReport) -> SweepReportRead:
    return SweepReportRead(
        name=report.name,
        processed=report.processed,
        skipped=report.skipped,
        failed=report.failed,
    )


@router.post("/forfeit-or-refund", response_model=ForfeitOrRefundResponse)
async def forfeit_or_refund(
    payload: ForfeitOrRefundRequest,
    engine: Annotated[SettlementEngine, Depends(deps.get_settlement_engine)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> ForfeitOrRefundResponse:
    result = await engine.forfeit_or_refund(
        actor,
        action=payload.action,
        auction_id=payload.auction_id,
        user_id=payload.user_id,
        amount=payload.amount,
    )
    return ForfeitOrRefundResponse(
        status=result.status,
        payment_id=result.payment_id,
        amount=result.amount,
        refund_id=result.refund_id,
    )


@router.post("/sweeps/close-auctions", response_model=SweepReportRead)
async def run_close_sweep(
    engine: Annotated[SettlementEngine, Depends(deps.get_settlement_engine)],
    _: Annotated[Actor, Depends(deps.get_admin_actor)],
) -> SweepReportRead:
    return _report(await engine.close_ended_auctions())


@router.post("/sweeps/enforce-deadlines", response_model=SweepReportRead)
async def run_deadline_sweep(
    engine: Annotated[SettlementEngine, Depends(deps.get_settlement_engine)],
    _: Annotated[Actor, Depends(deps.get_admin_actor)],
) -> SweepReportRead:
    return _report(await engine.enforce_winner_deadlines())
