"""In-memory record of recent sync runs, shown on the sync status endpoint."""

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from itertools import islice
from typing import Optional

from turfdesk.config import utc_now_naive

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"error": logging.ERROR, "warning": logging.WARNING}


class ActivityType(str, Enum):
    SYNC_START = "sync_start"
    SYNC_COMPLETE = "sync_complete"
    SYNC_ERROR = "sync_error"
    SYSTEM = "system"


@dataclass
class ActivityEntry:
    activity_type: ActivityType
    message: str
    venue: Optional[str] = None
    details: Optional[str] = None
    status: str = "info"  # info, success, warning, error
    timestamp: datetime = field(default_factory=utc_now_naive)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["activity_type"] = self.activity_type.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


class ActivityLog:
    """Bounded activity log, newest entry first."""

    def __init__(self, max_entries: int = 100):
        self._entries: deque[ActivityEntry] = deque(maxlen=max_entries)

    def log(self, activity_type: ActivityType, message: str, **fields) -> ActivityEntry:
        """Record an entry and mirror it to the module logger."""
        entry = ActivityEntry(activity_type, message, **fields)
        self._entries.appendleft(entry)
        suffix = f" ({entry.venue})" if entry.venue else ""
        logger.log(_LOG_LEVELS.get(entry.status, logging.INFO), f"[Activity] {message}{suffix}")
        return entry

    def get_entries(self, limit: int = 50) -> list[dict]:
        return [e.to_dict() for e in islice(self._entries, limit)]

    def last(self, *types: ActivityType) -> Optional[ActivityEntry]:
        """Most recent entry, optionally restricted to the given types."""
        for entry in self._entries:
            if not types or entry.activity_type in types:
                return entry
        return None

    def clear(self) -> None:
        self._entries.clear()


activity_log = ActivityLog()


def log_sync_start(venue: str, race_date: str, trigger: str = "scheduled") -> None:
    activity_log.log(
        ActivityType.SYNC_START, f"Programme sync ({trigger}) for {race_date}", venue=venue
    )


def log_sync_complete(venue: str, message: str, changed: bool) -> None:
    activity_log.log(
        ActivityType.SYNC_COMPLETE,
        "Programme sync complete",
        venue=venue,
        details=message,
        status="success" if changed else "info",
    )


def log_sync_error(venue: str, error: str) -> None:
    activity_log.log(
        ActivityType.SYNC_ERROR,
        "Programme sync failed",
        venue=venue,
        details=error,
        status="error",
    )


def log_system(message: str, status: str = "info") -> None:
    activity_log.log(ActivityType.SYSTEM, message, status=status)
