"""Programme sync API: on-demand trigger and scheduler status."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import JSONResponse

from turfdesk.auth import session_user
from turfdesk.config import settings
from turfdesk.models.database import get_db
from turfdesk.scheduler.activity_log import (
    ActivityType,
    activity_log,
    log_sync_complete,
    log_sync_error,
    log_sync_start,
)
from turfdesk.scheduler.manager import scheduler_manager
from turfdesk.scrapers.casa import CasaCoursesScraper, FeedUnavailableError
from turfdesk.sync.reconciler import SyncReport, run_programme_sync

logger = logging.getLogger(__name__)

router = APIRouter()

TRUTHY = {"1", "true", "yes", "on"}


def parse_flag(value: Optional[str]) -> bool:
    """Interpret a boolean-ish query token."""
    return (value or "").strip().lower() in TRUTHY


@router.post("/programme")
async def sync_programme(
    request: Request,
    date: Optional[str] = None,
    venue: Optional[str] = None,
    add_races: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Sync one day of the Casa Courses programme and return the report."""
    user = session_user(request)
    if not user:
        return JSONResponse({"detail": "Not authenticated"}, status_code=401)

    try:
        race_date = _parse_date(date)
    except ValueError:
        return JSONResponse(
            {"detail": "Invalid or missing date, use YYYY-MM-DD"}, status_code=400
        )

    venue = (venue or "").strip() or settings.sync_default_venue
    create = parse_flag(add_races)

    log_sync_start(venue, race_date.isoformat(), trigger="manual")
    logger.info(f"Manual sync: {race_date} {venue} add_races={create}")

    scraper = CasaCoursesScraper.from_settings()
    try:
        report = await run_programme_sync(db, scraper, race_date, venue, add_races=create)
    except FeedUnavailableError as e:
        logger.error(f"Manual sync {race_date} ({venue}) failed: {e}")
        log_sync_error(venue, str(e))
        failed = SyncReport.failed(race_date, venue, str(e))
        return JSONResponse(failed.to_dict(), status_code=502)
    except Exception as e:
        logger.error(f"Manual sync {race_date} ({venue}) crashed: {e}", exc_info=True)
        await db.rollback()
        log_sync_error(venue, str(e))
        failed = SyncReport.failed(race_date, venue, f"Sync error: {e}")
        return JSONResponse(failed.to_dict(), status_code=500)
    finally:
        await scraper.close()

    log_sync_complete(venue, report.message, report.changed)
    return report.to_dict()


@router.get("/status")
async def sync_status(limit: int = 50):
    """Scheduler state, the next auto-sync run and recent sync activity."""
    last_run = activity_log.last(ActivityType.SYNC_COMPLETE, ActivityType.SYNC_ERROR)
    return {
        "enabled": settings.sync_enabled and not settings.disable_background,
        "venue": settings.sync_default_venue,
        "scheduler": scheduler_manager.status(),
        "last_run": last_run.to_dict() if last_run else None,
        "activity": activity_log.get_entries(limit=limit),
    }


def _parse_date(value: Optional[str]) -> date:
    if not value:
        raise ValueError("date is required")
    return date.fromisoformat(value.strip())
