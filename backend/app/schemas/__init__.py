"""Schema exports."""

from app.schemas.payment import (
    PaymentAssociation,
    PaymentIntentCreate,
    PaymentIntentCreateResponse,
    PaymentRead,
    WebhookAck,
)
from app.schemas.policy import SettlementPolicyRead, SettlementPolicyUpdate, TierSchema
from app.schemas.settlement import (
    ForfeitOrRefundRequest,
    ForfeitOrRefundResponse,
    SweepReportRead,
)
from app.schemas.wallet import WalletMoveRead, WalletRead

__all__ = [
    "ForfeitOrRefundRequest",
    "ForfeitOrRefundResponse",
    "PaymentAssociation",
    "PaymentIntentCreate",
    "PaymentIntentCreateResponse",
    "PaymentRead",
    "SettlementPolicyRead",
    "SettlementPolicyUpdate",
    "SweepReportRead",
    "TierSchema",
    "WalletMoveRead",
    "WalletRead",
    "WebhookAck",
]
