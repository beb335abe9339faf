"""Background job scheduling for turfdesk."""

from turfdesk.scheduler.manager import SchedulerManager, scheduler_manager
from turfdesk.scheduler.jobs import auto_sync_job

__all__ = ["SchedulerManager", "scheduler_manager", "auto_sync_job"]
