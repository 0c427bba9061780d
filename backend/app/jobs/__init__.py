"""Background jobs."""

from app.jobs.settlement_scheduler import SettlementScheduler

__all__ = ["SettlementScheduler"]
