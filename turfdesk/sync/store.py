"""Race/result record store used by the programme sync.

Every write commits on its own, so a pass that aborts half way leaves
whatever was written so far; re-running the pass is safe.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from turfdesk.models.race import PAYOUT_FIELDS, Race, Result
from turfdesk.venues import venue_match_key

logger = logging.getLogger(__name__)


class RaceStore:
    """Find/create/update-by-key operations over races and results."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_race_by_key(self, race_date: date, venue: str, race_number: int) -> Optional[Race]:
        """Race on a date/venue/number, or None.

        Venue comparison is case-insensitive and alias-aware. Should the
        table ever hold duplicates, the oldest one wins.
        """
        result = await self.db.execute(
            select(Race)
            .where(Race.date == race_date, Race.race_number == race_number)
            .order_by(Race.created_at, Race.id)
        )
        wanted = venue_match_key(venue)
        matches = [r for r in result.scalars().all() if venue_match_key(r.venue) == wanted]
        if len(matches) > 1:
            logger.warning(
                f"Duplicate races for {venue} {race_date} R{race_number}: "
                f"{[r.id for r in matches]} using {matches[0].id}"
            )
        return matches[0] if matches else None

    async def find_race_by_id(self, race_id: str) -> Optional[Race]:
        result = await self.db.execute(select(Race).where(Race.id == race_id))
        return result.scalar_one_or_none()

    async def create_race(self, **fields: Any) -> Race:
        race = Race(**fields)
        self.db.add(race)
        await self.db.commit()
        logger.info(f"Created race {race.id}")
        return race

    async def update_race(self, race: Race, changes: dict[str, Any]) -> bool:
        """Apply changes to a race; returns True if anything was written."""
        dirty = {k: v for k, v in changes.items() if getattr(race, k) != v}
        if not dirty:
            return False
        for key, value in dirty.items():
            setattr(race, key, value)
        await self.db.commit()
        logger.debug(f"Updated race {race.id}: {sorted(dirty)}")
        return True

    async def find_result_by_race_id(self, race_id: str) -> Optional[Result]:
        result = await self.db.execute(select(Result).where(Result.race_id == race_id))
        return result.scalar_one_or_none()

    async def create_result(self, race_id: str, arrival: list[int], **payouts: dict) -> Result:
        """Create a result; payout maps default to empty."""
        result = Result(
            race_id=race_id,
            arrival=list(arrival),
            **{name: dict(payouts.get(name) or {}) for name in PAYOUT_FIELDS},
        )
        self.db.add(result)
        await self.db.commit()
        logger.info(f"Created result for {race_id}: {arrival}")
        return result

    async def update_result(self, result: Result, changes: dict[str, Any]) -> bool:
        """Apply changes to a result; returns True if anything was written."""
        dirty = {k: v for k, v in changes.items() if getattr(result, k) != v}
        if not dirty:
            return False
        for key, value in dirty.items():
            # JSON columns only track reassignment, never in-place mutation
            setattr(result, key, list(value) if isinstance(value, list) else value)
        await self.db.commit()
        logger.debug(f"Updated result {result.race_id}: {sorted(dirty)}")
        return True
