"""Integration shortcuts."""

from .stripe_client import (
    PaymentGateway,
    PaymentIntent,
    Refund,
    StripeClient,
    StripeClientError,
    WebhookSignatureError,
)
from .stripe_events import (
    ChargeFailed,
    ChargeRefunded,
    ChargeSucceeded,
    GatewayEvent,
    UnrecognizedEvent,
    parse_event,
)

__all__ = [
    "ChargeFailed",
    "ChargeRefunded",
    "ChargeSucceeded",
    "GatewayEvent",
    "PaymentGateway",
    "PaymentIntent",
    "Refund",
    "StripeClient",
    "StripeClientError",
    "UnrecognizedEvent",
    "WebhookSignatureError",
    "parse_event",
]
