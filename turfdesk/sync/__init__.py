"""Casa Courses programme reconciliation."""

from turfdesk.sync.reconciler import SyncReport, run_programme_sync

__all__ = ["SyncReport", "run_programme_sync"]
