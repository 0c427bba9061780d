"""Load and update the settlement policy (tiers and winner deadline)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.models import DEFAULT_POLICY_ID, SettlementPolicy
from app.services.tier_rules import Tier, parse_tiers


@dataclass(slots=True, frozen=True)
class SettlementRules:
    """Parsed, immutable view of the stored policy used for one sweep."""

    deposit_tiers: tuple[Tier, ...]
    forfeit_tiers: tuple[Tier, ...]
    winner_deadline_hours: int


def to_rules(policy: SettlementPolicy) -> SettlementRules:
    return SettlementRules(
        deposit_tiers=tuple(parse_tiers(policy.deposit_tiers)),
        forfeit_tiers=tuple(parse_tiers(policy.forfeit_tiers)),
        winner_deadline_hours=policy.winner_deadline_hours,
    )


async def get_policy(
    session: AsyncSession, policy_id: str = DEFAULT_POLICY_ID
) -> SettlementPolicy | None:
    return await session.get(SettlementPolicy, policy_id)


async def load_rules(
    session: AsyncSession, policy_id: str = DEFAULT_POLICY_ID
) -> SettlementRules | None:
    policy = await get_policy(session, policy_id)
    if policy is None:
        return None
    return to_rules(policy)


async def save_policy(
    session: AsyncSession,
    *,
    deposit_tiers: Sequence[dict[str, Any]],
    forfeit_tiers: Sequence[dict[str, Any]],
    winner_deadline_hours: int,
    policy_id: str = DEFAULT_POLICY_ID,
) -> SettlementPolicy:
    """Create or replace the policy row."""

    # Fail before writing if any tier is malformed.
    try:
        parse_tiers(deposit_tiers)
        parse_tiers(forfeit_tiers)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if winner_deadline_hours <= 0:
        raise ValidationError("winner_deadline_hours must be positive")

    policy = await session.get(SettlementPolicy, policy_id)
    if policy is None:
        policy = SettlementPolicy(id=policy_id)
        session.add(policy)
    policy.deposit_tiers = [dict(tier) for tier in deposit_tiers]
    policy.forfeit_tiers = [dict(tier) for tier in forfeit_tiers]
    policy.winner_deadline_hours = winner_deadline_hours
    await session.commit()
    await session.refresh(policy)
    return policy
