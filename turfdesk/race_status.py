"""Live race status derived from the scheduled start and the distance.

Status is never stored: it is recomputed from the clock on every read.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from turfdesk.config import utc_now

NOT_STARTED = "Non commencée"
RUNNING = "En cours"
FINISHED = "Terminée"

# Average gallop speed in m/s, plus time spent at the start
RACE_SPEED_MPS = 16.5
PREPARATION_SECONDS = 60


def race_start(race_date: date, time_hm: str) -> datetime:
    """Scheduled start as an aware UTC datetime (bad times fall back to midnight)."""
    try:
        hours, minutes = (int(part) for part in (time_hm or "").split(":", 1))
    except ValueError:
        hours, minutes = 0, 0
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        hours, minutes = 0, 0
    return datetime(race_date.year, race_date.month, race_date.day, hours, minutes, tzinfo=timezone.utc)


def race_duration(distance: int) -> timedelta:
    """Expected running time for a race of the given distance in meters."""
    return timedelta(seconds=max(distance or 0, 0) / RACE_SPEED_MPS + PREPARATION_SECONDS)


def race_status(race_date: date, time_hm: str, distance: int, now: Optional[datetime] = None) -> str:
    now = now or utc_now()
    start = race_start(race_date, time_hm)
    if now < start:
        return NOT_STARTED
    if now < start + race_duration(distance):
        return RUNNING
    return FINISHED
