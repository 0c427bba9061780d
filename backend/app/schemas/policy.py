"""Settlement policy schemas."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TierSchema(BaseModel):
    """One ``[min, max]`` price band and its rate; ``max=None`` is unbounded."""

    min: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    max: Decimal | None = None
    rate: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), le=Decimal("1"))

    @model_validator(mode="after")
    def _check_bounds(self) -> "TierSchema":
        if self.max is not None and self.max < self.min:
            raise ValueError("max must not be below min")
        return self

    def as_stored(self) -> dict[str, float | None]:
        return {
            "min": float(self.min),
            "max": None if self.max is None else float(self.max),
            "rate": float(self.rate),
        }


class SettlementPolicyUpdate(BaseModel):
    deposit_tiers: list[TierSchema] = Field(default_factory=list)
    forfeit_tiers: list[TierSchema] = Field(default_factory=list)
    winner_deadline_hours: int = Field(default=48, gt=0, le=24 * 30)


class SettlementPolicyRead(BaseModel):
    id: str
    deposit_tiers: list[TierSchema]
    forfeit_tiers: list[TierSchema]
    winner_deadline_hours: int

    model_config = ConfigDict(from_attributes=True)
