"""One reconciliation pass of the Casa Courses programme against stored races.

A pass runs in two independent stages over the meetings held at tracked
venues:

1. Race creation (only when ``add_races`` is set): every feed race with no
   stored counterpart gets a bare race record, then best-effort enrichment
   (purse, participants, temperature) from the per-race detail endpoint.
2. Result reconciliation: every finished race with a usable finish order is
   matched against stored races. Matches get enrichment plus a result
   (created, or its arrival updated; payout maps are never touched).
   Unmatched races are reported, never created here.

Running the same pass twice against unchanged feed data writes nothing new
on the second run.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from turfdesk.models.race import Race, make_race_id
from turfdesk.scrapers.base import ScraperError
from turfdesk.scrapers.casa import CasaCoursesScraper
from turfdesk.sync.matcher import match_race
from turfdesk.sync.normalizer import ExternalRace, normalize_detail, normalize_meetings
from turfdesk.sync.store import RaceStore

logger = logging.getLogger(__name__)

SKIP_INVALID_CODE = "invalid race code"
SKIP_EMPTY_FINISH_ORDER = "empty finish order"


@dataclass
class SyncReport:
    """Outcome of one sync pass."""

    date: str
    venue: str
    success: bool = True
    races_added: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)
    not_found: list[dict] = field(default_factory=list)
    meetings_total: int = 0
    meetings_kept: int = 0
    message: str = ""

    @classmethod
    def failed(cls, race_date: date, venue: str, message: str) -> "SyncReport":
        return cls(date=race_date.isoformat(), venue=venue, success=False, message=message)

    def skip(self, race: ExternalRace, reason: str) -> None:
        entry = {"venue": race.venue, "code": race.code, "name": race.name, "reason": reason}
        if entry not in self.skipped:
            self.skipped.append(entry)

    def summarize(self) -> str:
        if self.meetings_kept == 0:
            self.message = (
                f"No tracked meetings in programme "
                f"({self.meetings_total} meeting(s) returned by the feed)."
            )
            return self.message
        parts = []
        if self.races_added:
            parts.append(f"{len(self.races_added)} race(s) added")
        parts.append(f"{len(self.created)} created, {len(self.updated)} updated")
        self.message = (
            f"Synced: {', '.join(parts)}; "
            f"{len(self.not_found)} races not found in DB."
        )
        return self.message

    @property
    def changed(self) -> bool:
        return bool(self.races_added or self.created or self.updated)

    def to_dict(self) -> dict:
        return asdict(self)


async def _enrich_race(
    store: RaceStore, scraper: CasaCoursesScraper, race: Race, ext: ExternalRace
) -> bool:
    """Apply purse/participants/temperature from the detail endpoint.

    Fetch failures are swallowed: the race keeps whatever it had.
    """
    if ext.external_id is None:
        return False
    try:
        raw = await scraper.get_race_detail(ext.external_id)
    except ScraperError as e:
        logger.debug(f"Enrichment skipped for {race.id}: {e}")
        return False

    detail = normalize_detail(raw, default_currency=ext.currency)
    changes = {}
    if detail.purse is not None:
        changes["purse"] = detail.purse.amount
        changes["purse_currency"] = detail.purse.currency
    if detail.participants:
        changes["participants"] = detail.participants
    if detail.temperature is not None:
        changes["weather_temp"] = detail.temperature
    return await store.update_race(race, changes)


async def run_programme_sync(
    db: AsyncSession,
    scraper: CasaCoursesScraper,
    race_date: date,
    venue: str,
    add_races: bool = False,
) -> SyncReport:
    """Run one sync pass for a date and feed venue token.

    Raises FeedUnavailableError when the programme cannot be fetched;
    every per-race problem ends up in the returned report instead.
    """
    store = RaceStore(db)
    report = SyncReport(date=race_date.isoformat(), venue=venue)

    raw_meetings = await scraper.get_programme(race_date, venue)
    meetings = normalize_meetings(raw_meetings)
    report.meetings_total = len(raw_meetings)
    report.meetings_kept = len(meetings)
    logger.info(
        f"Programme {race_date} ({venue}): {report.meetings_kept}/{report.meetings_total} "
        f"meetings at tracked venues"
    )

    feed_races = [race for meeting in meetings for race in meeting.races]
    enriched: set[str] = set()

    if add_races:
        for ext in feed_races:
            if ext.race_number <= 0:
                report.skip(ext, SKIP_INVALID_CODE)
                continue
            if await match_race(store, race_date, ext) is not None:
                continue
            race_id = make_race_id(race_date, ext.venue, ext.race_number)
            if await store.find_race_by_id(race_id) is not None:
                continue

            race = await store.create_race(
                id=race_id,
                date=race_date,
                venue=ext.venue,
                race_number=ext.race_number,
                time=ext.time,
                distance=ext.distance,
                title=ext.name,
                purse=0.0,
                purse_currency=ext.currency,
                participants=[],
            )
            report.races_added.append(race_id)
            await _enrich_race(store, scraper, race, ext)
            enriched.add(race_id)

    for ext in feed_races:
        if not ext.finished:
            continue
        if ext.race_number <= 0:
            report.skip(ext, SKIP_INVALID_CODE)
            continue
        if not ext.arrival:
            report.skip(ext, SKIP_EMPTY_FINISH_ORDER)
            continue

        race: Optional[Race] = await match_race(store, race_date, ext)
        if race is None:
            report.not_found.append({
                "venue": ext.venue,
                "race_number": ext.race_number,
                "name": ext.name,
            })
            continue

        if race.id not in enriched:
            await _enrich_race(store, scraper, race, ext)
            enriched.add(race.id)

        existing = await store.find_result_by_race_id(race.id)
        if existing is not None:
            # Arrival only: payout maps are maintained by hand
            await store.update_result(existing, {"arrival": ext.arrival})
            report.updated.append(race.id)
        else:
            await store.create_result(race.id, ext.arrival)
            report.created.append(race.id)

    report.summarize()
    logger.info(f"Programme sync {race_date} ({venue}): {report.message}")
    return report
