"""ORM models package export."""

from app.models.auction import Auction, AuctionState, CommissionStatus, DepositStatus
from app.models.contract import CONTRACT_VERSION, Contract
from app.models.payment import (
    CHARGEABLE_TYPES,
    Payment,
    PaymentEvent,
    PaymentStatus,
    PaymentType,
)
from app.models.revenue import PlatformRevenueEvent, RevenueSource, RevenueType
from app.models.settlement_policy import (
    DEFAULT_POLICY_ID,
    DEFAULT_WINNER_DEADLINE_HOURS,
    SettlementPolicy,
)
from app.models.user import User, UserRole
from app.models.wallet import Wallet, WalletMove, WalletMoveKind

__all__ = [
    "Auction",
    "AuctionState",
    "CHARGEABLE_TYPES",
    "CONTRACT_VERSION",
    "CommissionStatus",
    "Contract",
    "DEFAULT_POLICY_ID",
    "DEFAULT_WINNER_DEADLINE_HOURS",
    "DepositStatus",
    "Payment",
    "PaymentEvent",
    "PaymentStatus",
    "PaymentType",
    "PlatformRevenueEvent",
    "RevenueSource",
    "RevenueType",
    "SettlementPolicy",
    "User",
    "UserRole",
    "Wallet",
    "WalletMove",
    "WalletMoveKind",
]
