"""Price tier evaluation shared by deposit and forfeit sizing."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Sequence

MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(slots=True, frozen=True)
class Tier:
    """Inclusive ``[minimum, maximum]`` price band; ``maximum=None`` is unbounded."""

    minimum: Decimal
    maximum: Decimal | None
    rate: Decimal

    def matches(self, amount: Decimal) -> bool:
        if amount < self.minimum:
            return False
        return self.maximum is None or amount <= self.maximum


def to_money(value: Decimal | float | int | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, default: Decimal) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid tier value: {value!r}") from exc


def parse_tiers(raw: Iterable[Mapping[str, Any]] | None) -> list[Tier]:
    """Build tiers from stored ``{"min", "max", "rate"}`` mappings, keeping order."""

    tiers: list[Tier] = []
    for item in raw or []:
        maximum = item.get("max")
        tiers.append(
            Tier(
                minimum=_to_decimal(item.get("min"), ZERO),
                maximum=None if maximum is None else _to_decimal(maximum, ZERO),
                rate=_to_decimal(item.get("rate"), ZERO),
            )
        )
    return tiers


def match_rate(amount: Decimal, tiers: Sequence[Tier]) -> Decimal:
    """Return the rate of the first tier containing ``amount``, else 0."""

    for tier in tiers:
        if tier.matches(amount):
            return tier.rate
    return ZERO


def tiered_amount(amount: Decimal, tiers: Sequence[Tier]) -> Decimal:
    """Price times the matching tier rate, rounded to currency precision."""

    return to_money(amount * match_rate(amount, tiers))


__all__ = ["Tier", "match_rate", "parse_tiers", "tiered_amount", "to_money"]
