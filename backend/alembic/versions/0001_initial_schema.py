"""Initial settlement schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSONB_TYPE = postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")

user_role = sa.Enum("ADMIN", "MEMBER", name="userrole")
auction_state = sa.Enum(
    "DRAFT",
    "APPROVED_AWAITING_PAYMENT",
    "ACTIVE",
    "ENDED",
    "ENDED_NO_RESPONSE",
    name="auctionstate",
)
deposit_status = sa.Enum(
    "NONE", "HELD", "WAIVED", "INSUFFICIENT", "FORFEITED", name="depositstatus"
)
commission_status = sa.Enum(
    "NONE", "BUYER_PAID", "SELLER_PAID", "PAID", "FORFEITED", name="commissionstatus"
)
wallet_move_kind = sa.Enum(
    "CREDIT", "RESERVE", "RELEASE", "FORFEIT", name="walletmovekind"
)
payment_type = sa.Enum(
    "DEPOSIT",
    "LISTING_FEE",
    "BUYER_COMMISSION",
    "SELLER_COMMISSION",
    "FORFEIT",
    "REFUND",
    name="paymenttype",
)
payment_status = sa.Enum(
    "CREATED", "SUCCEEDED", "FAILED", "FORFEITED", "REFUNDED", name="paymentstatus"
)
revenue_type = sa.Enum(
    "BUYER_COMMISSION", "SELLER_COMMISSION", "FORFEIT", name="revenuetype"
)
revenue_source = sa.Enum("COMMISSION", "FORFEIT", name="revenuesource")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=120)),
        sa.Column("role", user_role, nullable=False),
        sa.Column(
            "vip_deposit_waived", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "auctions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "seller_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("state", auction_state, nullable=False),
        sa.Column("start_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("reserve_price", sa.Numeric(12, 2)),
        sa.Column("current_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column(
            "current_winner_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("final_price", sa.Numeric(12, 2)),
        sa.Column("ends_at", sa.DateTime(timezone=True)),
        sa.Column("ended_at", sa.DateTime(timezone=True)),
        sa.Column("activated_at", sa.DateTime(timezone=True)),
        sa.Column(
            "listing_fee_paid", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("listing_fee_payment_id", sa.Uuid(as_uuid=True)),
        sa.Column("deposit_required", sa.Numeric(12, 2)),
        sa.Column("deposit_held", sa.Numeric(12, 2)),
        sa.Column("deposit_status", deposit_status, nullable=False),
        sa.Column("winner_deadline_at", sa.DateTime(timezone=True)),
        sa.Column("winner_deadline_hours", sa.Integer()),
        sa.Column(
            "buyer_confirmed_purchase",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("forfeit_amount", sa.Numeric(12, 2)),
        sa.Column("forfeited_at", sa.DateTime(timezone=True)),
        sa.Column(
            "buyer_commission_paid",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("buyer_commission_payment_id", sa.Uuid(as_uuid=True)),
        sa.Column("buyer_commission_paid_at", sa.DateTime(timezone=True)),
        sa.Column(
            "seller_commission_paid",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("seller_commission_payment_id", sa.Uuid(as_uuid=True)),
        sa.Column("seller_commission_paid_at", sa.DateTime(timezone=True)),
        sa.Column("commission_status", commission_status, nullable=False),
        sa.Column(
            "winner_contact_released",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_auctions_state_ends_at", "auctions", ["state", "ends_at"])
    op.create_index(
        "ix_auctions_state_winner_deadline_at",
        "auctions",
        ["state", "winner_deadline_at"],
    )

    op.create_table(
        "wallets",
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("available", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("reserved", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("locked", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.CheckConstraint("available >= 0", name="ck_wallets_available_non_negative"),
        sa.CheckConstraint("reserved >= 0", name="ck_wallets_reserved_non_negative"),
        sa.CheckConstraint("locked >= 0", name="ck_wallets_locked_non_negative"),
    )

    op.create_table(
        "wallet_moves",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("wallets.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", wallet_move_kind, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("available_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("reserved_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("auction_id", sa.Uuid(as_uuid=True)),
        sa.Column("payment_id", sa.Uuid(as_uuid=True)),
        sa.Column("note", sa.String(length=255)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_wallet_moves_user_created", "wallet_moves", ["user_id", "created_at"]
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", payment_type, nullable=False),
        sa.Column(
            "auction_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("auctions.id", ondelete="SET NULL"),
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=12), nullable=False),
        sa.Column("gateway_reference_id", sa.String(length=255)),
        sa.Column("status", payment_status, nullable=False),
        sa.Column("refund_id", sa.String(length=255)),
        sa.Column(
            "related_payment_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("payments.id", ondelete="SET NULL"),
        ),
        sa.Column("failure_reason", sa.Text()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index(
        "ix_payments_owner_auction_type_status",
        "payments",
        ["user_id", "auction_id", "type", "status"],
    )
    op.create_index(
        "ix_payments_gateway_reference_id", "payments", ["gateway_reference_id"]
    )

    op.create_table(
        "payment_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "provider_event_id", sa.String(length=255), nullable=False, unique=True
        ),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column(
            "received_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("raw", JSONB_TYPE, nullable=False),
    )

    op.create_table(
        "platform_revenue_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("auction_id", sa.Uuid(as_uuid=True)),
        sa.Column("user_id", sa.Uuid(as_uuid=True)),
        sa.Column("payment_id", sa.Uuid(as_uuid=True)),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=12), nullable=False),
        sa.Column("type", revenue_type, nullable=False),
        sa.Column("source", revenue_source, nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_platform_revenue_events_auction_id",
        "platform_revenue_events",
        ["auction_id"],
    )

    op.create_table(
        "contracts",
        sa.Column(
            "auction_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("auctions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("seller_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("buyer_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "terms_accepted_seller",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "terms_accepted_buyer",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("contract_version", sa.String(length=16), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "settlement_policies",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("deposit_tiers", JSONB_TYPE, nullable=False),
        sa.Column("forfeit_tiers", JSONB_TYPE, nullable=False),
        sa.Column(
            "winner_deadline_hours", sa.Integer(), nullable=False, server_default="48"
        ),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("settlement_policies")
    op.drop_table("contracts")
    op.drop_index(
        "ix_platform_revenue_events_auction_id", table_name="platform_revenue_events"
    )
    op.drop_table("platform_revenue_events")
    op.drop_table("payment_events")
    op.drop_index("ix_payments_gateway_reference_id", table_name="payments")
    op.drop_index("ix_payments_owner_auction_type_status", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_wallet_moves_user_created", table_name="wallet_moves")
    op.drop_table("wallet_moves")
    op.drop_table("wallets")
    op.drop_index("ix_auctions_state_winner_deadline_at", table_name="auctions")
    op.drop_index("ix_auctions_state_ends_at", table_name="auctions")
    op.drop_table("auctions")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        revenue_source,
        revenue_type,
        payment_status,
        payment_type,
        wallet_move_kind,
        commission_status,
        deposit_status,
        auction_state,
        user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
