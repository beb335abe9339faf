"""Races API - manual race entry and listing with live status."""

import logging
from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from turfdesk.models.database import get_db
from turfdesk.models.race import DEFAULT_CURRENCY, Race, make_race_id
from turfdesk.race_status import race_status
from turfdesk.scrapers.base import BaseScraper
from turfdesk.sync.normalizer import (
    DEFAULT_WEIGHT,
    PLACEHOLDER_NAME,
    normalize_distance,
    normalize_participants,
    normalize_time,
    positive_int,
    to_float,
)
from turfdesk.sync.store import RaceStore
from turfdesk.venues import canonical_venue

logger = logging.getLogger(__name__)

router = APIRouter()


class Participant(BaseModel):
    number: int = Field(ge=1)
    horse: str = PLACEHOLDER_NAME
    jockey: str = PLACEHOLDER_NAME
    weight: float = DEFAULT_WEIGHT


class RaceCreate(BaseModel):
    date: date_type
    venue: str = Field(min_length=1)
    race_number: int = Field(ge=1)
    time: str = Field(default="00:00", pattern=r"^\d{2}:\d{2}$")
    distance: int = Field(default=0, ge=0)
    title: str = ""
    purse: float = Field(default=0.0, ge=0)
    purse_currency: str = DEFAULT_CURRENCY
    participants: list[Participant] = []
    weather_temp: Optional[float] = None


class RaceUpdate(BaseModel):
    """Editable race fields; date, venue and number are fixed by the ID."""

    time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    distance: Optional[int] = Field(default=None, ge=0)
    title: Optional[str] = None
    purse: Optional[float] = Field(default=None, ge=0)
    purse_currency: Optional[str] = None
    participants: Optional[list[Participant]] = None
    weather_temp: Optional[float] = None


class RaceCardImport(BaseModel):
    """One day's card at one course, as exported by the racing office."""

    model_config = ConfigDict(str_strip_whitespace=True)

    event_date: date_type
    hippodrome: str = Field(min_length=1)
    races: list[dict] = Field(min_length=1)


SKIP_MISSING_FIELDS = "race_number, time, distance and title are required"
SKIP_DUPLICATE = "race already exists"


def _with_status(race: Race) -> dict:
    data = race.to_dict()
    data["status"] = race_status(race.date, race.time, race.distance)
    return data


def _sorted_participants(participants: list[Participant]) -> list[dict]:
    return [p.model_dump() for p in sorted(participants, key=lambda p: p.number)]


@router.get("")
async def list_races(date: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """List races, newest date first, optionally for a single date."""
    query = select(Race).order_by(Race.date.desc(), Race.race_number)
    if date:
        try:
            target = date_type.fromisoformat(date)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date format, use YYYY-MM-DD")
        query = query.where(Race.date == target)

    result = await db.execute(query)
    return [_with_status(r) for r in result.scalars().all()]


@router.get("/{race_id}")
async def get_race(race_id: str, db: AsyncSession = Depends(get_db)):
    race = await RaceStore(db).find_race_by_id(race_id)
    if not race:
        raise HTTPException(status_code=404, detail="Race not found")
    return _with_status(race)


@router.post("", status_code=201)
async def create_race(body: RaceCreate, db: AsyncSession = Depends(get_db)):
    """Create a race; its ID is derived from date, venue and race number."""
    store = RaceStore(db)
    venue = canonical_venue(body.venue) or body.venue.strip()
    race_id = make_race_id(body.date, venue, body.race_number)

    existing = await store.find_race_by_id(race_id)
    if existing is None:
        existing = await store.find_race_by_key(body.date, venue, body.race_number)
    if existing is not None:
        raise HTTPException(status_code=409, detail=f"Race already exists: {existing.id}")

    race = await store.create_race(
        id=race_id,
        date=body.date,
        venue=venue,
        race_number=body.race_number,
        time=body.time,
        distance=body.distance,
        title=body.title or f"Course C{body.race_number}",
        purse=round(body.purse, 2),
        purse_currency=body.purse_currency,
        participants=_sorted_participants(body.participants),
        weather_temp=body.weather_temp,
    )
    return _with_status(race)


@router.post("/import", status_code=201)
async def import_race_card(body: RaceCardImport, db: AsyncSession = Depends(get_db)):
    """Create every race on a card; bad or already stored races are skipped."""
    store = RaceStore(db)
    venue = canonical_venue(body.hippodrome) or body.hippodrome
    created: list[str] = []
    skipped: list[dict] = []

    for raw in body.races:
        race_number = positive_int(raw.get("race_number"))
        raw_time = raw.get("time")
        distance = normalize_distance(raw.get("distance"))
        title = BaseScraper.clean_text(raw.get("title"))
        has_time = isinstance(raw_time, str) and bool(raw_time.strip())
        if not (race_number and has_time and distance > 0 and title):
            skipped.append({"race": f"Race {race_number or '?'}", "reason": SKIP_MISSING_FIELDS})
            continue

        race_id = make_race_id(body.event_date, venue, race_number)
        existing = await store.find_race_by_id(race_id)
        if existing is None:
            existing = await store.find_race_by_key(body.event_date, venue, race_number)
        if existing is not None:
            skipped.append({"race": existing.id, "reason": SKIP_DUPLICATE})
            continue

        purse = to_float(raw.get("purse"))
        await store.create_race(
            id=race_id,
            date=body.event_date,
            venue=venue,
            race_number=race_number,
            time=normalize_time(raw_time),
            distance=distance,
            title=title,
            purse=round(purse, 2) if purse and purse > 0 else 0.0,
            purse_currency=BaseScraper.clean_text(raw.get("purse_currency")) or DEFAULT_CURRENCY,
            participants=normalize_participants(raw.get("participants")),
        )
        created.append(race_id)

    message = f"Imported {len(created)} race(s)"
    if skipped:
        message += f", skipped {len(skipped)}"
    logger.info(f"Card import {body.event_date} {venue}: {message}")
    return {"created": created, "skipped": skipped, "message": message}


@router.put("/{race_id}")
async def update_race(race_id: str, body: RaceUpdate, db: AsyncSession = Depends(get_db)):
    store = RaceStore(db)
    race = await store.find_race_by_id(race_id)
    if not race:
        raise HTTPException(status_code=404, detail="Race not found")

    # weather_temp is the only column that may be cleared
    changes = {
        k: v for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k == "weather_temp"
    }
    if body.participants is not None:
        changes["participants"] = _sorted_participants(body.participants)
    if changes.get("purse") is not None:
        changes["purse"] = round(changes["purse"], 2)

    await store.update_race(race, changes)
    return _with_status(race)


@router.delete("/{race_id}")
async def delete_race(race_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a race together with its result, if any."""
    store = RaceStore(db)
    race = await store.find_race_by_id(race_id)
    if not race:
        raise HTTPException(status_code=404, detail="Race not found")

    result = await store.find_result_by_race_id(race_id)
    if result is not None:
        await db.delete(result)
    await db.delete(race)
    await db.commit()
    logger.info(f"Deleted race {race_id}")
    return {"status": "deleted", "id": race_id}
