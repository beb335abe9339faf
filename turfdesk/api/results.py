"""Results API - finishing orders and payout maps, one result per race."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from turfdesk.models.database import get_db
from turfdesk.models.race import PAYOUT_FIELDS, Result
from turfdesk.sync.store import RaceStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _dedupe_arrival(arrival: list[int]) -> list[int]:
    seen = set()
    unique = []
    for n in arrival:
        if n not in seen:
            seen.add(n)
            unique.append(n)
    return unique


class ResultCreate(BaseModel):
    race_id: str = Field(min_length=1)
    arrival: list[int] = []
    rapports: dict = {}
    simple: dict = {}
    couple: dict = {}
    trio: dict = {}

    @field_validator("arrival")
    @classmethod
    def arrival_numbers(cls, v: list[int]) -> list[int]:
        if any(n < 1 for n in v):
            raise ValueError("runner numbers must be positive")
        return _dedupe_arrival(v)


class ResultUpdate(BaseModel):
    arrival: Optional[list[int]] = None
    rapports: Optional[dict] = None
    simple: Optional[dict] = None
    couple: Optional[dict] = None
    trio: Optional[dict] = None

    @field_validator("arrival")
    @classmethod
    def arrival_numbers(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        if v is None:
            return v
        if any(n < 1 for n in v):
            raise ValueError("runner numbers must be positive")
        return _dedupe_arrival(v)


@router.get("")
async def list_results(db: AsyncSession = Depends(get_db)):
    """Race IDs that have a result."""
    result = await db.execute(select(Result.race_id).order_by(Result.race_id))
    return list(result.scalars().all())


@router.get("/{race_id}")
async def get_result(race_id: str, db: AsyncSession = Depends(get_db)):
    result = await RaceStore(db).find_result_by_race_id(race_id)
    if not result:
        raise HTTPException(status_code=404, detail="Result not found")
    return result.to_dict()


@router.post("", status_code=201)
async def create_result(body: ResultCreate, db: AsyncSession = Depends(get_db)):
    store = RaceStore(db)
    if await store.find_race_by_id(body.race_id) is None:
        raise HTTPException(status_code=404, detail="Race not found")
    if await store.find_result_by_race_id(body.race_id) is not None:
        raise HTTPException(status_code=409, detail="Result already exists for this race")

    result = await store.create_result(
        body.race_id,
        body.arrival,
        **{name: getattr(body, name) for name in PAYOUT_FIELDS},
    )
    return result.to_dict()


@router.put("/{race_id}")
async def update_result(race_id: str, body: ResultUpdate, db: AsyncSession = Depends(get_db)):
    """Replace any of the arrival or payout maps; omitted fields are kept."""
    store = RaceStore(db)
    result = await store.find_result_by_race_id(race_id)
    if not result:
        raise HTTPException(status_code=404, detail="Result not found")

    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    await store.update_result(result, changes)
    return result.to_dict()


@router.delete("/{race_id}")
async def delete_result(race_id: str, db: AsyncSession = Depends(get_db)):
    result = await RaceStore(db).find_result_by_race_id(race_id)
    if not result:
        raise HTTPException(status_code=404, detail="Result not found")
    await db.delete(result)
    await db.commit()
    logger.info(f"Deleted result for {race_id}")
    return {"status": "deleted", "race_id": race_id}
