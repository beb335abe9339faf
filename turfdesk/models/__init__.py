"""Database models for turfdesk."""

from turfdesk.models.database import Base, get_db, init_db
from turfdesk.models.race import Race, Result

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "Race",
    "Result",
]
