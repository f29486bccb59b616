"""
Ingestion Scheduler - Automated article fetching on schedule.

Runs the aggregator on a crontab schedule (hourly by default).
"""

from datetime import datetime
from typing import Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from newsdesk.models.domain import IngestionReport
from newsdesk.services.ingestion.aggregator import Aggregator
from newsdesk.services.ingestion.errors import StorageUnavailableError

logger = structlog.get_logger(__name__)

JOB_ID = "news_ingestion"


class IngestionScheduler:
    """Schedules and runs periodic ingestion runs."""

    def __init__(
        self,
        aggregator: Aggregator,
        cron: str = "0 * * * *",
        timezone: str = "UTC",
    ):
        self.aggregator = aggregator
        self.cron = cron
        self.timezone = timezone

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._last_report: Optional[IngestionReport] = None
        self._last_error: Optional[str] = None

    def start(self):
        """Start the scheduler (needs a running event loop)."""
        if self._scheduler is not None and self._scheduler.running:
            logger.warning("Scheduler already running")
            return

        self._scheduler = AsyncIOScheduler(timezone=self.timezone)
        self._scheduler.add_job(
            self.run_once,
            CronTrigger.from_crontab(self.cron, timezone=self.timezone),
            id=JOB_ID,
            name="News Ingestion",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("Ingestion scheduler started", cron=self.cron)

    def stop(self):
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Ingestion scheduler stopped")

    async def run_once(self) -> Optional[IngestionReport]:
        """Execute one ingestion run, keeping the scheduler alive on failure."""
        try:
            report = await self.aggregator.run()
        except StorageUnavailableError as e:
            self._last_error = str(e)
            logger.error("Ingestion run aborted", error=str(e))
            return None

        self._last_report = report
        self._last_error = None
        return report

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def next_run_at(self) -> Optional[datetime]:
        if not self.is_running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def get_status(self) -> dict:
        """Get scheduler status."""
        last = self._last_report
        return {
            "running": self.is_running,
            "cron": self.cron,
            "next_run": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_run": last.finished_at.isoformat() if last else None,
            "last_run_healthy": last.healthy if last else None,
            "last_error": self._last_error,
        }
