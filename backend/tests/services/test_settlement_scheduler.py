"""Scheduler wiring for the periodic settlement sweeps."""

import logging

import pytest

from app.core.settings import SettlementSettings
from app.jobs import SettlementScheduler
from app.jobs.settlement_scheduler import (
    CLOSE_AUCTIONS_JOB_ID,
    ENFORCE_DEADLINES_JOB_ID,
)
from app.services.settlement_engine import SweepReport


class _StubEngine:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def close_ended_auctions(self) -> SweepReport:
        self.calls.append("close")
        if self.fail:
            raise RuntimeError("database unavailable")
        return SweepReport(name="close_ended_auctions")

    async def enforce_winner_deadlines(self) -> SweepReport:
        self.calls.append("deadline")
        return SweepReport(name="enforce_winner_deadlines")


def _settings() -> SettlementSettings:
    return SettlementSettings(
        close_auctions_interval_seconds=30,
        enforce_deadlines_interval_seconds=600,
    )


def test_setup_jobs_registers_both_sweeps_once() -> None:
    scheduler = SettlementScheduler(_StubEngine(), _settings())

    scheduler.setup_jobs()
    scheduler.setup_jobs()

    jobs = {job.id: job for job in scheduler.scheduler.get_jobs()}
    assert set(jobs) == {CLOSE_AUCTIONS_JOB_ID, ENFORCE_DEADLINES_JOB_ID}
    assert jobs[CLOSE_AUCTIONS_JOB_ID].trigger.interval.total_seconds() == 30
    assert jobs[ENFORCE_DEADLINES_JOB_ID].trigger.interval.total_seconds() == 600


@pytest.mark.asyncio
async def test_sweep_failures_are_logged_not_raised(caplog) -> None:
    engine = _StubEngine(fail=True)
    scheduler = SettlementScheduler(engine, _settings())

    with caplog.at_level(logging.ERROR):
        await scheduler.close_ended_auctions()
    await scheduler.enforce_winner_deadlines()

    assert engine.calls == ["close", "deadline"]
    assert "Close auctions sweep aborted" in caplog.text
