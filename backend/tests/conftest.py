"""Test fixtures for the auction settlement backend."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("APP_ENV", "local")

from app.api import deps
from app.core.config import get_settings
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import dispose_engine, get_sessionmaker
from app.integrations import PaymentIntent, Refund, StripeClient, StripeClientError
from app.main import app
from app.models import (
    Auction,
    AuctionState,
    Payment,
    PaymentStatus,
    PaymentType,
    User,
    UserRole,
    Wallet,
)
from app.services import policy_service
from app.services.settlement_engine import SettlementEngine

WEBHOOK_SECRET = "whsec_test_secret"

DEPOSIT_TIERS = [
    {"min": 0, "max": 5000, "rate": 0.05},
    {"min": 5000, "max": None, "rate": 0.08},
]
FORFEIT_TIERS = [
    {"min": 0, "max": 5000, "rate": 0.05},
    {"min": 5000, "max": None, "rate": 0.08},
]


class FakeGateway:
    """In-memory stand-in for the Stripe account used by the engine."""

    def __init__(self) -> None:
        self.intents: list[dict[str, Any]] = []
        self.refunds: list[dict[str, Any]] = []
        self.fail_create: str | None = None
        self.fail_refund: str | None = None

    def create_payment_intent(
        self,
        *,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_seed: Any = None,
    ) -> PaymentIntent:
        if self.fail_create:
            raise StripeClientError(self.fail_create)
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents.append(
            {
                "id": intent_id,
                "amount": amount,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_seed": str(idempotency_seed),
            }
        )
        return PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret_test",
            status="requires_payment_method",
            metadata=dict(metadata),
            latest_charge=f"ch_{intent_id}",
        )

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        return PaymentIntent(
            id=payment_intent_id,
            client_secret=None,
            status="succeeded",
            metadata={},
            latest_charge=f"ch_{payment_intent_id}",
        )

    def refund_payment_intent(
        self,
        payment_intent_id: str,
        *,
        amount: Decimal | None = None,
        idempotency_seed: Any = None,
    ) -> Refund:
        if self.fail_refund:
            raise StripeClientError(self.fail_refund)
        refund_id = f"re_test_{len(self.refunds) + 1}"
        self.refunds.append(
            {
                "id": refund_id,
                "payment_intent_id": payment_intent_id,
                "amount": amount,
                "idempotency_seed": str(idempotency_seed),
            }
        )
        return Refund(id=refund_id, status="succeeded", amount=amount)


class FrozenClock:
    """Callable clock the engine reads; tests move it forward explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class Seeder:
    """Insert fixture rows, each in its own committed session."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self.sessionmaker = sessionmaker

    async def _add(self, instance: Any) -> Any:
        async with self.sessionmaker() as session:
            session.add(instance)
            await session.commit()
            await session.refresh(instance)
        return instance

    async def user(
        self,
        *,
        role: UserRole = UserRole.MEMBER,
        vip_deposit_waived: bool = False,
        is_active: bool = True,
    ) -> User:
        return await self._add(
            User(
                email=f"user+{uuid.uuid4().hex[:8]}@example.com",
                display_name="Test User",
                role=role,
                vip_deposit_waived=vip_deposit_waived,
                is_active=is_active,
            )
        )

    async def policy(
        self,
        *,
        deposit_tiers: list[dict[str, Any]] | None = None,
        forfeit_tiers: list[dict[str, Any]] | None = None,
        winner_deadline_hours: int = 48,
    ) -> None:
        async with self.sessionmaker() as session:
            await policy_service.save_policy(
                session,
                deposit_tiers=DEPOSIT_TIERS if deposit_tiers is None else deposit_tiers,
                forfeit_tiers=FORFEIT_TIERS if forfeit_tiers is None else forfeit_tiers,
                winner_deadline_hours=winner_deadline_hours,
            )

    async def wallet(
        self,
        user_id: uuid.UUID,
        *,
        available: str = "0",
        reserved: str = "0",
    ) -> Wallet:
        return await self._add(
            Wallet(
                user_id=user_id,
                available=Decimal(available),
                reserved=Decimal(reserved),
                locked=Decimal("0"),
            )
        )

    async def auction(
        self,
        *,
        seller_id: uuid.UUID | None,
        winner_id: uuid.UUID | None = None,
        state: AuctionState = AuctionState.ACTIVE,
        current_price: str = "6000",
        ends_at: datetime | None = None,
        **fields: Any,
    ) -> Auction:
        return await self._add(
            Auction(
                seller_id=seller_id,
                current_winner_id=winner_id,
                title="Vintage watch",
                state=state,
                start_price=Decimal("100"),
                current_price=Decimal(current_price),
                ends_at=ends_at,
                **fields,
            )
        )

    async def payment(
        self,
        *,
        user_id: uuid.UUID,
        payment_type: PaymentType,
        amount: str,
        auction_id: uuid.UUID | None = None,
        status: PaymentStatus = PaymentStatus.CREATED,
        gateway_reference_id: str | None = None,
        currency: str = "aed",
    ) -> Payment:
        return await self._add(
            Payment(
                user_id=user_id,
                type=payment_type,
                auction_id=auction_id,
                amount=Decimal(amount),
                currency=currency,
                status=status,
                gateway_reference_id=gateway_reference_id,
            )
        )

    async def get(self, model: type[Any], key: Any) -> Any:
        async with self.sessionmaker() as session:
            return await session.get(model, key)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture()
async def sessionmaker(
    reset_database: None, db_url: str
) -> async_sessionmaker[AsyncSession]:
    return get_sessionmaker(db_url)


@pytest.fixture()
def seed(sessionmaker: async_sessionmaker[AsyncSession]) -> Seeder:
    return Seeder(sessionmaker)


@pytest.fixture()
def engine(
    sessionmaker: async_sessionmaker[AsyncSession],
    gateway: FakeGateway,
    clock: FrozenClock,
) -> SettlementEngine:
    return SettlementEngine(
        sessionmaker,
        gateway,
        currency="aed",
        max_attempts=3,
        backoff_seconds=0,
        clock=clock,
    )


@pytest_asyncio.fixture()
async def app_context(
    engine: SettlementEngine,
    gateway: FakeGateway,
    seed: Seeder,
    clock: FrozenClock,
) -> AsyncIterator[dict[str, Any]]:
    """Yield an async client wired to the test engine plus seeded users."""
    admin = await seed.user(role=UserRole.ADMIN)
    seller = await seed.user()
    winner = await seed.user()
    await seed.policy()

    app.dependency_overrides[deps.get_settlement_engine] = lambda: engine
    app.dependency_overrides[deps.get_stripe_client] = lambda: StripeClient(
        None, webhook_secret=WEBHOOK_SECRET
    )

    context: dict[str, Any] = {
        "admin": admin,
        "seller": seller,
        "winner": winner,
        "admin_headers": auth_headers(admin),
        "seller_headers": auth_headers(seller),
        "winner_headers": auth_headers(winner),
        "engine": engine,
        "gateway": gateway,
        "seed": seed,
        "clock": clock,
    }
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            context["client"] = client
            yield context
    finally:
        app.dependency_overrides.clear()
