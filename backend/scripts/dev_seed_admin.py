"""Seed a local admin account and the default settlement policy."""

from __future__ import annotations

import asyncio

from sqlalchemy import select

from app.core.config import get_settings
from app.core.security import create_access_token
from app.db.session import get_sessionmaker
from app.models import DEFAULT_POLICY_ID, User, UserRole
from app.services import policy_service

EMAIL = "admin@auctions.local"

DEPOSIT_TIERS = [
    {"min": 0, "max": 5000, "rate": 0.05},
    {"min": 5000, "max": None, "rate": 0.08},
]
FORFEIT_TIERS = [
    {"min": 0, "max": 5000, "rate": 0.05},
    {"min": 5000, "max": None, "rate": 0.08},
]


async def main() -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        admin = (
            await session.execute(select(User).where(User.email == EMAIL))
        ).scalar_one_or_none()
        if admin is None:
            admin = User(email=EMAIL, display_name="Dev Admin", role=UserRole.ADMIN)
            session.add(admin)
            await session.commit()
            print(f"Created admin {EMAIL}")
        else:
            print(f"User {EMAIL} already exists")

        if await policy_service.get_policy(session) is None:
            await policy_service.save_policy(
                session,
                deposit_tiers=DEPOSIT_TIERS,
                forfeit_tiers=FORFEIT_TIERS,
                winner_deadline_hours=48,
            )
            print(f"Created settlement policy {DEFAULT_POLICY_ID}")

        print(f"Bearer token: {create_access_token(str(admin.id))}")


if __name__ == "__main__":
    asyncio.run(main())
