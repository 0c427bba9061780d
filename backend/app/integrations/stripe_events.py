"""Closed set of gateway events the settlement engine understands."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import uuid4

from app.integrations.stripe_client import from_minor_units

CHARGE_SUCCEEDED = "payment_intent.succeeded"
CHARGE_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"


@dataclass(slots=True, frozen=True)
class ChargeSucceeded:
    event_id: str
    payment_intent_id: str | None
    payment_id: str | None
    amount: Decimal | None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ChargeFailed:
    event_id: str
    payment_intent_id: str | None
    payment_id: str | None
    failure_reason: str | None


@dataclass(slots=True, frozen=True)
class ChargeRefunded:
    event_id: str
    payment_intent_id: str | None
    payment_id: str | None
    refund_reference: str | None
    amount_refunded: Decimal | None


@dataclass(slots=True, frozen=True)
class UnrecognizedEvent:
    event_id: str
    event_type: str


GatewayEvent = ChargeSucceeded | ChargeFailed | ChargeRefunded | UnrecognizedEvent


def _metadata(data_object: dict[str, Any]) -> dict[str, str]:
    raw = data_object.get("metadata") or {}
    return {str(key): str(value) for key, value in raw.items() if value is not None}


def parse_event(payload: dict[str, Any]) -> GatewayEvent:
    """Map a decoded Stripe event envelope onto one of the event variants."""

    event_id = str(payload.get("id") or f"evt_local_{uuid4().hex}")
    event_type = str(payload.get("type") or "")
    data_object = (payload.get("data") or {}).get("object") or {}
    metadata = _metadata(data_object)
    payment_id = metadata.get("paymentId") or None

    if event_type == CHARGE_SUCCEEDED:
        amount = data_object.get("amount_received") or data_object.get("amount")
        return ChargeSucceeded(
            event_id=event_id,
            payment_intent_id=data_object.get("id"),
            payment_id=payment_id,
            amount=from_minor_units(amount),
            metadata=metadata,
        )
    if event_type == CHARGE_FAILED:
        last_error = data_object.get("last_payment_error") or {}
        return ChargeFailed(
            event_id=event_id,
            payment_intent_id=data_object.get("id"),
            payment_id=payment_id,
            failure_reason=last_error.get("message"),
        )
    if event_type == CHARGE_REFUNDED:
        return ChargeRefunded(
            event_id=event_id,
            payment_intent_id=data_object.get("payment_intent"),
            payment_id=payment_id,
            refund_reference=data_object.get("id"),
            amount_refunded=from_minor_units(data_object.get("amount_refunded")),
        )
    return UnrecognizedEvent(event_id=event_id, event_type=event_type)


__all__ = [
    "CHARGE_FAILED",
    "CHARGE_REFUNDED",
    "CHARGE_SUCCEEDED",
    "ChargeFailed",
    "ChargeRefunded",
    "ChargeSucceeded",
    "GatewayEvent",
    "UnrecognizedEvent",
    "parse_event",
]
