"""Periodic settlement sweeps driven by APScheduler."""

from __future__ import annotations

import logging

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.settings import SettlementSettings
from app.services.settlement_engine import SettlementEngine

logger = logging.getLogger(__name__)

CLOSE_AUCTIONS_JOB_ID = "close_ended_auctions"
ENFORCE_DEADLINES_JOB_ID = "enforce_winner_deadlines"


class SettlementScheduler:
    """Runs the close and deadline sweeps on fixed intervals."""

    def __init__(self, engine: SettlementEngine, settings: SettlementSettings) -> None:
        self.engine = engine
        self.settings = settings
        self.scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": AsyncIOExecutor()},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
            timezone="UTC",
        )

    def setup_jobs(self) -> None:
        for job_id in (CLOSE_AUCTIONS_JOB_ID, ENFORCE_DEADLINES_JOB_ID):
            if self.scheduler.get_job(job_id):
                self.scheduler.remove_job(job_id)

        self.scheduler.add_job(
            self.close_ended_auctions,
            trigger=IntervalTrigger(seconds=self.settings.close_auctions_interval_seconds),
            id=CLOSE_AUCTIONS_JOB_ID,
            name="Close Ended Auctions",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.enforce_winner_deadlines,
            trigger=IntervalTrigger(
                seconds=self.settings.enforce_deadlines_interval_seconds
            ),
            id=ENFORCE_DEADLINES_JOB_ID,
            name="Enforce Winner Deadlines",
            max_instances=1,
            coalesce=True,
        )

    async def close_ended_auctions(self) -> None:
        try:
            report = await self.engine.close_ended_auctions()
        except Exception:
            logger.exception("Close auctions sweep aborted")
            return
        logger.info("Close auctions sweep finished: %s", report.to_dict())

    async def enforce_winner_deadlines(self) -> None:
        try:
            report = await self.engine.enforce_winner_deadlines()
        except Exception:
            logger.exception("Winner deadline sweep aborted")
            return
        logger.info("Winner deadline sweep finished: %s", report.to_dict())

    def start(self) -> None:
        self.setup_jobs()
        self.scheduler.start()
        logger.info(
            "Settlement scheduler started (close every %ss, deadlines every %ss)",
            self.settings.close_auctions_interval_seconds,
            self.settings.enforce_deadlines_interval_seconds,
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Settlement scheduler stopped")


__all__ = ["CLOSE_AUCTIONS_JOB_ID", "ENFORCE_DEADLINES_JOB_ID", "SettlementScheduler"]
