"""Transaction runner with first-committer-wins retry semantics.

Work callbacks receive a fresh session and return an explicit outcome:

* ``Commit(value)`` commits and hands ``value`` back to the caller.
* ``Retry(reason)`` rolls back and re-runs the callback.
* ``Abort(error)`` rolls back and raises ``error``.

Optimistic-lock conflicts raised while the callback runs or while committing
(``StaleDataError`` from ``version_id_col`` checks, ``IntegrityError`` from
racing inserts, ``OperationalError`` from a locked database) are treated like
``Retry``. The attempt budget is bounded; exhausting it raises
``TransactionConflictError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import SettlementError, TransactionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONFLICT_ERRORS = (StaleDataError, IntegrityError, OperationalError)


@dataclass(slots=True, frozen=True)
class Commit(Generic[T]):
    value: T


@dataclass(slots=True, frozen=True)
class Retry:
    reason: str


@dataclass(slots=True, frozen=True)
class Abort:
    error: SettlementError


Outcome = Commit[Any] | Retry | Abort
Work = Callable[[AsyncSession], Awaitable[Outcome]]


async def run_transaction(
    sessionmaker: async_sessionmaker[AsyncSession],
    work: Work,
    *,
    label: str,
    max_attempts: int = 5,
    backoff_seconds: float = 0.05,
) -> Any:
    """Run ``work`` in its own transaction until it commits or aborts."""

    last_reason = "no attempts made"
    for attempt in range(1, max_attempts + 1):
        async with sessionmaker() as session:
            try:
                outcome = await work(session)
                if isinstance(outcome, Commit):
                    await session.commit()
                    return outcome.value
            except _CONFLICT_ERRORS as exc:
                await session.rollback()
                outcome = Retry(f"{type(exc).__name__}: {exc}")
            except BaseException:
                await session.rollback()
                raise

            await session.rollback()
            if isinstance(outcome, Abort):
                raise outcome.error

        last_reason = outcome.reason
        logger.info(
            "%s attempt %s/%s rolled back: %s",
            label,
            attempt,
            max_attempts,
            last_reason,
        )
        if attempt < max_attempts and backoff_seconds > 0:
            await asyncio.sleep(backoff_seconds * attempt)

    raise TransactionConflictError(
        f"{label} did not commit after {max_attempts} attempts ({last_reason})"
    )


__all__ = ["Abort", "Commit", "Outcome", "Retry", "Work", "run_transaction"]
