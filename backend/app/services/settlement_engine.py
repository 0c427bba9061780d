"""Settlement engine: the entry points schedulers, webhooks and operators call.

Every state change runs through :func:`app.db.transactions.run_transaction`,
one transaction per auction or event. Sweeps isolate failures per auction so
one bad row never stops the rest of the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from functools import partial
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import (
    ConsistencyViolationError,
    NotFoundError,
    SettlementError,
    ValidationError,
)
from app.db.transactions import Work, run_transaction
from app.integrations.stripe_client import PaymentGateway
from app.integrations.stripe_events import parse_event
from app.models import DEFAULT_POLICY_ID, AuctionState, Payment, UserRole
from app.security.permissions import Actor, require_roles
from app.services import (
    auction_lifecycle,
    closing_service,
    deadline_service,
    deposit_settlement_service,
    payment_events_service,
    payments_service,
    policy_service,
    wallet_service,
)
from app.services.closing_service import CloseResult
from app.services.deadline_service import ForfeitResult
from app.services.deposit_settlement_service import SettlementActionResult
from app.services.policy_service import SettlementRules
from app.services.tier_rules import ZERO

logger = logging.getLogger(__name__)

_CONTRACT_STATES = (AuctionState.ENDED, AuctionState.ENDED_NO_RESPONSE)


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class SweepReport:
    """Per-run tally of auctions processed, skipped and failed."""

    name: str
    processed: list[UUID] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "processed": [str(item) for item in self.processed],
            "skipped": [str(item) for item in self.skipped],
            "failed": [str(item) for item in self.failed],
        }


class SettlementEngine:
    """Coordinates the settlement services against one database and gateway."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        gateway: PaymentGateway,
        *,
        currency: str = "aed",
        max_attempts: int = 5,
        backoff_seconds: float = 0.05,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._gateway = gateway
        self._currency = currency.lower()
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._clock = clock

    async def _run(self, work: Work, *, label: str) -> Any:
        return await run_transaction(
            self._sessionmaker,
            work,
            label=label,
            max_attempts=self._max_attempts,
            backoff_seconds=self._backoff_seconds,
        )

    async def _load_rules(self) -> SettlementRules | None:
        async with self._sessionmaker() as session:
            try:
                return await policy_service.load_rules(session)
            except ValueError:
                logger.exception("Settlement policy %s is malformed", DEFAULT_POLICY_ID)
                return None

    async def _require_rules(self) -> SettlementRules:
        rules = await self._load_rules()
        if rules is None:
            raise NotFoundError("Settlement policy is not configured")
        return rules

    def _record_failure(self, report: SweepReport, auction_id: UUID, exc: Exception) -> None:
        report.failed.append(auction_id)
        if isinstance(exc, NotFoundError):
            logger.warning("%s: auction %s vanished: %s", report.name, auction_id, exc)
        elif isinstance(exc, ConsistencyViolationError):
            logger.critical(
                "%s: consistency violation on auction %s: %s",
                report.name,
                auction_id,
                exc,
            )
        else:
            logger.exception("%s: auction %s failed", report.name, auction_id)

    # Closing ---------------------------------------------------------------

    async def _ensure_contract(self, result: CloseResult) -> None:
        if result.winner_id is None or result.seller_id is None:
            return
        if result.state not in _CONTRACT_STATES:
            return
        try:
            created = await self._run(
                partial(
                    closing_service.ensure_contract,
                    auction_id=result.auction_id,
                    seller_id=result.seller_id,
                    buyer_id=result.winner_id,
                ),
                label=f"contract:{result.auction_id}",
            )
        except Exception:
            # The auction is already closed; the next close call retries this.
            logger.exception("Contract creation for auction %s failed", result.auction_id)
            return
        if created:
            logger.info("Contract created for auction %s", result.auction_id)

    async def _close(
        self, auction_id: UUID, rules: SettlementRules, now: datetime
    ) -> CloseResult:
        result: CloseResult = await self._run(
            partial(closing_service.close_auction, auction_id=auction_id, rules=rules, now=now),
            label=f"close:{auction_id}",
        )
        await self._ensure_contract(result)
        return result

    async def close_auction(self, auction_id: UUID) -> CloseResult:
        """Close one auction now if it is due; safe to repeat."""

        rules = await self._require_rules()
        return await self._close(auction_id, rules, self._clock())

    async def close_ended_auctions(self) -> SweepReport:
        """Close every ACTIVE auction whose end time has passed."""

        report = SweepReport(name="close_ended_auctions")
        rules = await self._load_rules()
        if rules is None:
            logger.error("Settlement policy missing; %s skipped", report.name)
            return report

        now = self._clock()
        async with self._sessionmaker() as session:
            auction_ids = await auction_lifecycle.ids_due_for_close(session, now)

        for auction_id in auction_ids:
            try:
                result = await self._close(auction_id, rules, now)
            except Exception as exc:
                self._record_failure(report, auction_id, exc)
                continue
            (report.processed if result.closed else report.skipped).append(auction_id)

        logger.info(
            "%s: %s closed, %s skipped, %s failed",
            report.name,
            len(report.processed),
            len(report.skipped),
            len(report.failed),
        )
        return report

    # Winner deadline -------------------------------------------------------

    async def _enforce(
        self, auction_id: UUID, rules: SettlementRules, now: datetime
    ) -> ForfeitResult:
        return await self._run(
            partial(
                deadline_service.enforce_deadline,
                auction_id=auction_id,
                rules=rules,
                now=now,
                currency=self._currency,
            ),
            label=f"deadline:{auction_id}",
        )

    async def enforce_deadline(self, auction_id: UUID) -> ForfeitResult:
        rules = await self._require_rules()
        return await self._enforce(auction_id, rules, self._clock())

    async def enforce_winner_deadlines(self) -> SweepReport:
        """Forfeit deposits of winners who let their deadline pass."""

        report = SweepReport(name="enforce_winner_deadlines")
        rules = await self._load_rules()
        if rules is None:
            logger.error("Settlement policy missing; %s skipped", report.name)
            return report

        now = self._clock()
        async with self._sessionmaker() as session:
            auction_ids = await auction_lifecycle.ids_due_for_deadline(session, now)

        for auction_id in auction_ids:
            try:
                result = await self._enforce(auction_id, rules, now)
            except Exception as exc:
                self._record_failure(report, auction_id, exc)
                continue
            (report.processed if result.forfeited else report.skipped).append(auction_id)

        logger.info(
            "%s: %s forfeited, %s skipped, %s failed",
            report.name,
            len(report.processed),
            len(report.skipped),
            len(report.failed),
        )
        return report

    # Gateway events --------------------------------------------------------

    async def handle_gateway_payload(self, payload: dict[str, Any]) -> str:
        """Apply an already-trusted event envelope."""

        event = parse_event(payload)
        return await self._run(
            partial(
                payment_events_service.apply_gateway_event,
                event=event,
                raw=payload,
                now=self._clock(),
            ),
            label=f"event:{event.event_id}",
        )

    # Charges ---------------------------------------------------------------

    async def create_charge_intent(
        self,
        actor: Actor,
        *,
        payment_type: Any,
        amount: Any,
        currency: str | None = None,
        auction_id: UUID | None = None,
    ) -> tuple[str, UUID]:
        async with self._sessionmaker() as session:
            return await payments_service.create_charge_intent(
                session,
                actor=actor,
                payment_type=payment_type,
                amount=amount,
                currency=currency or self._currency,
                auction_id=auction_id,
                gateway=self._gateway,
            )

    async def confirm_association(
        self, actor: Actor, *, payment_id: UUID, gateway_reference_id: str
    ) -> Payment:
        async with self._sessionmaker() as session:
            return await payments_service.confirm_association(
                session,
                actor=actor,
                payment_id=payment_id,
                gateway_reference_id=gateway_reference_id,
            )

    # Operator settlement ---------------------------------------------------

    async def forfeit_or_refund(
        self,
        actor: Actor,
        *,
        action: str,
        auction_id: UUID,
        user_id: UUID,
        amount: Decimal,
    ) -> SettlementActionResult:
        """Admin-only manual settlement of a winner's succeeded deposit."""

        require_roles(actor, {UserRole.ADMIN})
        action = deposit_settlement_service.parse_action(action)
        amount = deposit_settlement_service.parse_settlement_amount(amount)

        if action == deposit_settlement_service.FORFEIT:
            return await self._run(
                partial(
                    deposit_settlement_service.forfeit_deposit,
                    user_id=user_id,
                    auction_id=auction_id,
                    amount=amount,
                    now=self._clock(),
                ),
                label=f"forfeit:{auction_id}:{user_id}",
            )

        async with self._sessionmaker() as session:
            deposit = await deposit_settlement_service.require_deposit(
                session, user_id=user_id, auction_id=auction_id
            )
            wallet = await wallet_service.get_wallet(session, user_id)
            reserved = wallet.reserved if wallet is not None else ZERO
            if reserved < amount:
                raise ValidationError(
                    f"Refund of {amount} exceeds reserved balance {reserved}"
                )
            if not deposit.gateway_reference_id:
                raise ValidationError("Deposit has no gateway reference to refund")
            deposit_id = deposit.id
            gateway_reference_id = deposit.gateway_reference_id

        refund = self._gateway.refund_payment_intent(
            gateway_reference_id,
            amount=amount,
            idempotency_seed=f"refund-{deposit_id}",
        )
        try:
            return await self._run(
                partial(
                    deposit_settlement_service.record_refund,
                    original_id=deposit_id,
                    refund=refund,
                    amount=amount,
                ),
                label=f"refund:{deposit_id}",
            )
        except SettlementError:
            logger.critical(
                "Gateway refund %s for deposit %s succeeded but was not recorded",
                refund.id,
                deposit_id,
            )
            raise


__all__ = ["SettlementEngine", "SweepReport", "utcnow"]
