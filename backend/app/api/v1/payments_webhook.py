"""Stripe webhook receiver for payment events and local simulators."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from app.api import deps
from app.core.config import get_settings
from app.core.exceptions import SettlementError
from app.integrations import StripeClient, StripeClientError, WebhookSignatureError
from app.schemas.payment import WebhookAck
from app.services.settlement_engine import SettlementEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments-webhook"])


@router.post("/webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def handle_webhook(
    request: Request,
    stripe_client: StripeClient = Depends(deps.get_stripe_client),
    engine: SettlementEngine = Depends(deps.get_settlement_engine),
) -> WebhookAck:
    if not stripe_client.webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook secret is not configured",
        )
    payload_bytes = await request.body()
    signature = request.headers.get("Stripe-Signature", "")
    try:
        payload = stripe_client.verify_event(payload_bytes, signature)
    except (WebhookSignatureError, StripeClientError) as exc:
        logger.warning("Rejected webhook: %s", exc.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message
        ) from exc

    try:
        result = await engine.handle_gateway_payload(payload)
    except SettlementError as exc:
        # A 5xx makes the gateway redeliver; the event id was not recorded.
        logger.error("Webhook %s processing failed: %s", payload.get("id"), exc.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        ) from exc
    return WebhookAck(status=result)


@router.post(
    "/dev/simulate-webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK
)
async def simulate_webhook(
    payload: dict[str, Any] = Body(...),
    engine: SettlementEngine = Depends(deps.get_settlement_engine),
) -> WebhookAck:
    settings = get_settings()
    if settings.app_env.lower() != "local":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Simulation route available in local environment only",
        )

    enriched_payload = dict(payload)
    enriched_payload.setdefault("id", f"simulated_{uuid4().hex}")
    result = await engine.handle_gateway_payload(enriched_payload)
    return WebhookAck(status=result)
