"""Common API dependencies."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_access_token
from app.core.settings import get_payment_settings, get_settlement_settings
from app.db.session import get_session, get_sessionmaker
from app.integrations import StripeClient
from app.models.user import User, UserRole
from app.security.permissions import Actor, require_roles
from app.services.settlement_engine import SettlementEngine

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> User:
    """Authenticate request via bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as exc:
        raise credentials_exception from exc

    subject = payload.get("sub")
    if subject is None:
        raise credentials_exception

    try:
        user_id = uuid.UUID(subject)
    except (ValueError, TypeError) as exc:
        raise credentials_exception from exc

    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        raise credentials_exception
    return user


async def get_current_actor(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Actor:
    return Actor.from_user(current_user)


async def get_admin_actor(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    require_roles(actor, {UserRole.ADMIN})
    return actor


@lru_cache
def get_stripe_client() -> StripeClient:
    settings = get_payment_settings()
    return StripeClient(
        settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
    )


@lru_cache
def get_settlement_engine() -> SettlementEngine:
    """Engine bound to the configured database and Stripe account."""
    payment_settings = get_payment_settings()
    settlement_settings = get_settlement_settings()
    return SettlementEngine(
        get_sessionmaker(),
        get_stripe_client(),
        currency=payment_settings.default_currency,
        max_attempts=settlement_settings.transaction_max_attempts,
        backoff_seconds=settlement_settings.transaction_retry_backoff_seconds,
    )
