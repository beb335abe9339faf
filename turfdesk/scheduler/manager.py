"""Owns the APScheduler instance that runs the programme auto-sync."""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from turfdesk.config import MIN_SYNC_INTERVAL_SECONDS
from turfdesk.scheduler.jobs import auto_sync_job

logger = logging.getLogger(__name__)

AUTO_SYNC_JOB_ID = "programme-auto-sync"


def bounded_interval(seconds: int) -> int:
    """Clamp a configured interval to the minimum allowed polling period."""
    if seconds < MIN_SYNC_INTERVAL_SECONDS:
        logger.warning(
            f"Sync interval {seconds}s below minimum, using {MIN_SYNC_INTERVAL_SECONDS}s"
        )
        return MIN_SYNC_INTERVAL_SECONDS
    return seconds


class SchedulerManager:
    """Thin wrapper over AsyncIOScheduler (UTC) for the app lifespan."""

    def __init__(self):
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def start(self) -> None:
        if not self.running:
            self.scheduler.start()
            logger.info("Scheduler running")

    async def stop(self) -> None:
        if self.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shut down")

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.scheduler.get_job(job_id)

    def setup_auto_sync(self, interval_seconds: int, run_now: bool = True) -> int:
        """Schedule the programme sync every interval, first run immediately.

        A tick that comes due while the previous run is still going is
        dropped (one instance at a time, missed runs coalesced). Returns
        the interval actually used.
        """
        interval = bounded_interval(interval_seconds)
        options = {"next_run_time": datetime.now(timezone.utc)} if run_now else {}
        self.scheduler.add_job(
            auto_sync_job,
            IntervalTrigger(seconds=interval),
            id=AUTO_SYNC_JOB_ID,
            name="Casa Courses programme sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
            **options,
        )
        logger.info(f"Auto-sync every {interval / 60:g} min")
        return interval

    def status(self) -> dict:
        """Scheduler state and upcoming runs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)  # unset while pending
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
            })
        return {"running": self.running, "jobs": jobs}


scheduler_manager = SchedulerManager()
