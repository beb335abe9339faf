"""Models for races and their results."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from turfdesk.config import utc_now_naive
from turfdesk.models.database import Base
from turfdesk.venues import venue_slug

DEFAULT_CURRENCY = "DH"

# Payout maps kept on a Result; edited by hand, never touched by the sync
PAYOUT_FIELDS = ("rapports", "simple", "couple", "trio")


def make_race_id(race_date: date, venue: str, race_number: int) -> str:
    """Generate the stable race ID, e.g. "casablanca-anfa-2026-03-14-r5".

    Every spelling of a tracked venue yields the same ID.
    """
    return f"{venue_slug(venue)}-{race_date.isoformat()}-r{race_number}"


class Race(Base):
    """A single race at a venue on a given date."""

    __tablename__ = "races"
    __table_args__ = (
        Index("ix_races_date", "date"),
        Index("ix_races_date_number", "date", "race_number"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    date: Mapped[date] = mapped_column(Date)
    venue: Mapped[str] = mapped_column(String(100))
    race_number: Mapped[int] = mapped_column(Integer)
    time: Mapped[str] = mapped_column(String(8), default="00:00")  # HH:MM, UTC
    distance: Mapped[int] = mapped_column(Integer, default=0)  # meters
    title: Mapped[str] = mapped_column(String(200), default="")
    purse: Mapped[float] = mapped_column(Float, default=0.0)
    purse_currency: Mapped[str] = mapped_column(String(10), default=DEFAULT_CURRENCY)
    # [{number, horse, jockey, weight}] ordered by start number
    participants: Mapped[list] = mapped_column(JSON, default=list)
    weather_temp: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "venue": self.venue,
            "race_number": self.race_number,
            "time": self.time,
            "distance": self.distance,
            "title": self.title,
            "purse": self.purse,
            "purse_currency": self.purse_currency,
            "participants": list(self.participants or []),
            "weather_temp": self.weather_temp,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Result(Base):
    """Finishing order and payouts for a race (one per race)."""

    __tablename__ = "results"
    __table_args__ = (UniqueConstraint("race_id", name="uq_results_race_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # No FK: a result is tied to its race by application logic only
    race_id: Mapped[str] = mapped_column(String(128))
    arrival: Mapped[list] = mapped_column(JSON, default=list)
    rapports: Mapped[dict] = mapped_column(JSON, default=dict)
    simple: Mapped[dict] = mapped_column(JSON, default=dict)
    couple: Mapped[dict] = mapped_column(JSON, default=dict)
    trio: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "race_id": self.race_id,
            "arrival": list(self.arrival or []),
            "rapports": dict(self.rapports or {}),
            "simple": dict(self.simple or {}),
            "couple": dict(self.couple or {}),
            "trio": dict(self.trio or {}),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
