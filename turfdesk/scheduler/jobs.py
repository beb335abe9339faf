"""Job definitions for scheduled tasks."""

import logging
from typing import Optional

from turfdesk.config import settings, utc_today
from turfdesk.models.database import async_session
from turfdesk.scheduler.activity_log import log_sync_complete, log_sync_error, log_sync_start
from turfdesk.scrapers.casa import CasaCoursesScraper
from turfdesk.sync.reconciler import SyncReport, run_programme_sync

logger = logging.getLogger(__name__)


async def auto_sync_job() -> Optional[SyncReport]:
    """Unattended programme sync for today.

    Never creates races: the background job only fills in results for
    races an operator has already entered. Every failure is logged and
    swallowed so the next tick runs regardless.
    """
    venue = settings.sync_default_venue
    today = utc_today()
    log_sync_start(venue, today.isoformat())

    try:
        async with async_session() as db:
            scraper = CasaCoursesScraper.from_settings()
            try:
                report = await run_programme_sync(db, scraper, today, venue, add_races=False)
            finally:
                await scraper.close()
    except Exception as e:
        logger.error(f"[Auto-sync] {today} ({venue}) failed: {e}", exc_info=True)
        log_sync_error(venue, str(e))
        return None

    log_sync_complete(venue, report.message, report.changed)
    if report.changed:
        logger.info(f"[Auto-sync] {report.message}")
    return report
