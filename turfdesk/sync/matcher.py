"""Resolve a normalized feed race to at most one stored race."""

import logging
from datetime import date
from typing import Optional

from turfdesk.models.race import Race
from turfdesk.sync.normalizer import ExternalRace
from turfdesk.sync.store import RaceStore

logger = logging.getLogger(__name__)


async def match_race(store: RaceStore, race_date: date, race: ExternalRace) -> Optional[Race]:
    """Find the stored race for a feed race by date + venue + race number.

    Exact match only: no fuzzy venue or number guessing. A race with an
    unusable number never matches.
    """
    if race.race_number <= 0 or not race.venue:
        return None
    found = await store.find_race_by_key(race_date, race.venue, race.race_number)
    if found is None:
        logger.debug(f"No stored race for {race.venue} {race_date} C{race.race_number}")
    return found
