"""Stripe SDK wrapper exposing the gateway operations settlement needs."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol, cast

import stripe

from app.core.exceptions import ExternalServiceError, ValidationError


@dataclass(slots=True)
class PaymentIntent:
    """Simplified payment intent payload."""

    id: str
    client_secret: str | None
    status: str
    metadata: dict[str, Any]
    latest_charge: str | None = None


@dataclass(slots=True)
class Refund:
    """Outcome of a gateway refund request."""

    id: str
    status: str
    amount: Decimal | None


class StripeClientError(ExternalServiceError):
    """Raised when Stripe interaction fails."""


class WebhookSignatureError(ValidationError):
    """Raised when an inbound event fails signature verification."""


class PaymentGateway(Protocol):
    """Contract the settlement engine requires from a payment gateway."""

    def create_payment_intent(
        self,
        *,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_seed: str | uuid.UUID | None = None,
    ) -> PaymentIntent: ...

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent: ...

    def refund_payment_intent(
        self,
        payment_intent_id: str,
        *,
        amount: Decimal | None = None,
        idempotency_seed: str | uuid.UUID | None = None,
    ) -> Refund: ...


def to_minor_units(amount: Decimal) -> int:
    quantized = amount.quantize(Decimal("0.01"))
    return int((quantized * 100).to_integral_value())


def from_minor_units(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value)) / Decimal("100")
    except (ArithmeticError, ValueError):
        return None


def _intent_from(data: Any) -> PaymentIntent:
    intent_data = cast(dict[str, Any], data)
    metadata_dict = cast(dict[str, Any], intent_data.get("metadata") or {})
    latest_charge = intent_data.get("latest_charge")
    if isinstance(latest_charge, dict):
        latest_charge = latest_charge.get("id")
    return PaymentIntent(
        id=str(intent_data.get("id")),
        client_secret=cast(str | None, intent_data.get("client_secret")),
        status=str(intent_data.get("status", "unknown")),
        metadata=dict(metadata_dict),
        latest_charge=cast(str | None, latest_charge),
    )


class StripeClient:
    """Thin wrapper around the Stripe SDK."""

    def __init__(
        self,
        secret_key: str | None,
        *,
        webhook_secret: str | None = None,
        idempotency_prefix: str = "settle",
        signature_tolerance: int = 300,
    ) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._idempotency_prefix = idempotency_prefix
        self._signature_tolerance = signature_tolerance
        stripe.api_key = secret_key
        stripe.max_network_retries = 2

    @property
    def webhook_secret(self) -> str | None:
        return self._webhook_secret

    def _idempotency_key(self, seed: str | uuid.UUID | None) -> str | None:
        if seed is None:
            return None
        return f"{self._idempotency_prefix}_{seed}"

    def _require_key(self) -> None:
        if not self._secret_key:
            raise StripeClientError("Stripe secret key is not configured")

    def create_payment_intent(
        self,
        *,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_seed: str | uuid.UUID | None = None,
    ) -> PaymentIntent:
        self._require_key()
        kwargs: dict[str, Any] = {
            "amount": to_minor_units(amount),
            "currency": currency.lower(),
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        idempotency_key = self._idempotency_key(idempotency_seed)
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key
        try:
            intent = stripe.PaymentIntent.create(**kwargs)
        except stripe.StripeError as exc:
            raise StripeClientError(
                f"Failed to create payment intent: {exc.user_message or exc}"
            ) from exc
        return _intent_from(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        self._require_key()
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as exc:
            raise StripeClientError("Failed to retrieve payment intent") from exc
        return _intent_from(intent)

    def refund_payment_intent(
        self,
        payment_intent_id: str,
        *,
        amount: Decimal | None = None,
        idempotency_seed: str | uuid.UUID | None = None,
    ) -> Refund:
        intent = self.retrieve_payment_intent(payment_intent_id)
        if not intent.latest_charge:
            raise StripeClientError("Payment intent has no charge to refund")
        kwargs: dict[str, Any] = {"charge": intent.latest_charge}
        if amount is not None:
            kwargs["amount"] = to_minor_units(amount)
        idempotency_key = self._idempotency_key(idempotency_seed)
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key
        try:
            refund = stripe.Refund.create(**kwargs)
        except stripe.StripeError as exc:
            raise StripeClientError("Failed to refund payment intent") from exc
        refund_data = cast(dict[str, Any], refund)
        return Refund(
            id=str(refund_data.get("id")),
            status=str(refund_data.get("status", "unknown")),
            amount=from_minor_units(refund_data.get("amount")),
        )

    def verify_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Check the ``Stripe-Signature`` header and decode the event body."""

        if not self._webhook_secret:
            raise StripeClientError("Webhook secret is not configured")
        if not signature:
            raise WebhookSignatureError("Missing signature header")
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookSignatureError("Invalid payload") from exc
        try:
            stripe.WebhookSignature.verify_header(
                text,
                signature,
                self._webhook_secret,
                self._signature_tolerance,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError("Invalid webhook signature") from exc
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise WebhookSignatureError("Invalid payload") from exc
        if not isinstance(decoded, dict):
            raise WebhookSignatureError("Invalid payload")
        return decoded
