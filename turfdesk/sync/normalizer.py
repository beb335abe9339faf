"""Normalize loosely-typed programme feed records into strict domain values.

Invalid values are rejected or defaulted here so nothing downstream has to
second-guess the feed: race codes become integers (0 when unusable), finish
orders become lists of positive starter numbers, prize strings become a
rounded amount plus currency, and runner detail becomes participant dicts.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from turfdesk.models.race import DEFAULT_CURRENCY
from turfdesk.scrapers.base import BaseScraper
from turfdesk.venues import canonical_venue

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 58.0
PLACEHOLDER_NAME = "N/A"

# Fields that may carry a runner's number inside a finish-order or runner object
_NUMBER_KEYS = ("number", "num", "runner", "horse_number", "saddle")
_HORSE_KEYS = ("horse", "horse_name", "name")
_JOCKEY_KEYS = ("jockey", "jockey_name")
_VENUE_KEYS = ("track", "venue", "hippodrome")

_RACE_CODE = re.compile(r"^\s*C\s*(\d+)", re.IGNORECASE)
_DIGITS = re.compile(r"\d+")
_TIME_HM = re.compile(r"^\s*(\d{1,2})\s*[:hH.]\s*(\d{2})")
_AMOUNT = re.compile(r"(-?)(\d[\d\s.,]*)")
_DOT_THOUSANDS = re.compile(r"^\d{1,3}(\.\d{3})+$")
_PLAIN_NUMBER = re.compile(r"^\d+(\.\d+)?$")


@dataclass
class Purse:
    amount: float
    currency: str = DEFAULT_CURRENCY


@dataclass
class ExternalRace:
    """One race from the programme feed, normalized."""

    venue: str  # canonical
    code: str
    race_number: int  # 0 when the code is unusable
    name: str
    external_id: Any = None
    time: str = "00:00"
    distance: int = 0
    starters: int = 0
    finished: bool = False
    arrival: list[int] = field(default_factory=list)
    currency: str = DEFAULT_CURRENCY


@dataclass
class ExternalMeeting:
    """One venue's racing card from the programme feed."""

    venue: str  # canonical
    feed_venue: str  # as reported by the feed
    races: list[ExternalRace] = field(default_factory=list)


@dataclass
class RaceDetail:
    """Enrichment data from the per-race detail endpoint."""

    purse: Optional[Purse] = None
    participants: list[dict] = field(default_factory=list)
    temperature: Optional[float] = None


def positive_int(value: Any) -> Optional[int]:
    """Coerce an int, integral float or digit string to a positive int."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and value > 0:
            return int(value)
        return None
    if isinstance(value, str):
        v = value.strip()
        if v.isdecimal():
            n = int(v)
            return n if n > 0 else None
    return None


def to_float(value: Any) -> Optional[float]:
    """Coerce a number or numeric string ("57,5", "21.3") to a finite float."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        v = value.strip().lower().replace(",", ".").removesuffix("kg").removesuffix("°c").strip()
        try:
            f = float(v)
        except ValueError:
            return None
        return f if math.isfinite(f) else None
    return None


def _first(entry: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None


def runner_number(entry: Any) -> Optional[int]:
    """Starter number from a bare value or from an object carrying one.

    The feed has shipped finish orders both as ``[4, 7]`` and as
    ``[{"position": 1, "number": "4"}, ...]``; both are accepted here.
    """
    if isinstance(entry, dict):
        return positive_int(_first(entry, _NUMBER_KEYS))
    return positive_int(entry)


def parse_race_number(code: Any) -> int:
    """Race number from a code like "C8"; 0 when no number can be found.

    Falls back to the first run of digits when the leading "C" is missing.
    """
    if isinstance(code, int) and not isinstance(code, bool):
        return code if code > 0 else 0
    if not isinstance(code, str) or not code.strip():
        return 0
    match = _RACE_CODE.match(code)
    if match:
        number = int(match.group(1))
    else:
        digits = _DIGITS.search(code)
        if not digits:
            return 0
        number = int(digits.group(0))
    return number if number > 0 else 0


def normalize_finish_order(entries: Any) -> list[int]:
    """Normalize a finish order to starter numbers, first finisher first.

    Unparseable entries and repeated numbers are dropped. When every kept
    entry is an object with a valid position, entries are ordered by that
    position; otherwise list order is finish order.
    """
    if not isinstance(entries, list):
        return []

    kept: list[tuple[Optional[int], int]] = []
    for entry in entries:
        number = runner_number(entry)
        if number is None:
            continue
        position = positive_int(entry.get("position")) if isinstance(entry, dict) else None
        kept.append((position, number))

    if kept and all(position is not None for position, _ in kept):
        kept.sort(key=lambda item: item[0])

    arrival: list[int] = []
    for _, number in kept:
        if number not in arrival:
            arrival.append(number)
    return arrival


def parse_prize(prize: Any, default_currency: str = DEFAULT_CURRENCY) -> Optional[Purse]:
    """Parse "<amount> <currency>" into a Purse, or None if unusable.

    Spaces (including non-breaking ones) and dots before groups of three
    digits are thousands separators; a comma is the decimal separator:
    "1 500 000 DH" -> 1500000 DH, "15000,50 EUR" -> 15000.5 EUR.
    """
    if isinstance(prize, (int, float)) and not isinstance(prize, bool):
        amount = to_float(prize)
        if amount is None or amount < 0:
            return None
        return Purse(round(amount, 2), default_currency)
    if not isinstance(prize, str):
        return None

    text = prize.strip()
    match = _AMOUNT.search(text)
    if not match or match.group(1):
        return None

    raw = re.sub(r"\s", "", match.group(2)).rstrip(".,")
    if "," in raw:
        if raw.count(",") > 1:
            return None
        raw = raw.replace(".", "").replace(",", ".")
    elif _DOT_THOUSANDS.match(raw):
        raw = raw.replace(".", "")
    if not _PLAIN_NUMBER.match(raw):
        return None

    amount = float(raw)
    if not math.isfinite(amount):
        return None

    currency = f"{text[:match.start()]} {text[match.end():]}".strip().rstrip(".")
    return Purse(round(amount, 2), currency or default_currency)


def normalize_participants(runners: Any) -> list[dict]:
    """Map runner detail to participants ordered by start number.

    Runners without a positive number are dropped; names default to a
    placeholder and weight to DEFAULT_WEIGHT.
    """
    if not isinstance(runners, list):
        return []

    by_number: dict[int, dict] = {}
    for runner in runners:
        if not isinstance(runner, dict):
            continue
        number = positive_int(_first(runner, _NUMBER_KEYS))
        if number is None or number in by_number:
            continue
        weight = to_float(runner.get("weight"))
        by_number[number] = {
            "number": number,
            "horse": BaseScraper.clean_text(_first(runner, _HORSE_KEYS)) or PLACEHOLDER_NAME,
            "jockey": BaseScraper.clean_text(_first(runner, _JOCKEY_KEYS)) or PLACEHOLDER_NAME,
            "weight": weight if weight is not None and weight > 0 else DEFAULT_WEIGHT,
        }
    return [by_number[n] for n in sorted(by_number)]


def normalize_time(value: Any) -> str:
    """Scheduled time as HH:MM ("14h30", "9:05:00" -> "14:30", "09:05")."""
    if isinstance(value, str):
        match = _TIME_HM.match(value)
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour < 24 and minute < 60:
                return f"{hour:02d}:{minute:02d}"
    return "00:00"


def normalize_distance(value: Any) -> int:
    """Distance in meters from 1600, "1600" or "1 600m"; 0 when unknown."""
    if isinstance(value, str):
        digits = "".join(_DIGITS.findall(value))
        return int(digits) if digits else 0
    return positive_int(value) or 0


def normalize_race(raw: dict, venue: str) -> ExternalRace:
    """Normalize one programme race under an already-canonical venue."""
    code = str(raw.get("code") or "").strip()
    race_number = parse_race_number(raw.get("code"))
    return ExternalRace(
        venue=venue,
        code=code,
        race_number=race_number,
        name=BaseScraper.clean_text(raw.get("name")) or f"Course {code or race_number}",
        external_id=raw.get("id"),
        time=normalize_time(raw.get("time_hm")),
        distance=normalize_distance(raw.get("distance")),
        starters=positive_int(raw.get("starters")) or 0,
        finished=raw.get("finished") is True,
        arrival=normalize_finish_order(raw.get("finish_order")),
        currency=BaseScraper.clean_text(raw.get("currency")) or DEFAULT_CURRENCY,
    )


def normalize_meetings(meetings: list[dict]) -> list[ExternalMeeting]:
    """Keep meetings held at tracked venues and normalize their races.

    The feed's country marker is ignored; the venue allow-list alone
    decides what is kept.
    """
    kept: list[ExternalMeeting] = []
    for meeting in meetings:
        feed_venue = BaseScraper.clean_text(_first(meeting, _VENUE_KEYS)) or ""
        venue = canonical_venue(feed_venue)
        if venue is None:
            if feed_venue:
                logger.debug(f"Dropping untracked venue: {feed_venue!r}")
            continue
        raw_races = meeting.get("races")
        if not isinstance(raw_races, list):
            if raw_races is not None:
                logger.warning(f"Ignoring malformed races list for {feed_venue!r}")
            raw_races = []
        races = [normalize_race(r, venue) for r in raw_races if isinstance(r, dict)]
        kept.append(ExternalMeeting(venue=venue, feed_venue=feed_venue, races=races))
    return kept


def normalize_detail(raw: dict, default_currency: str = DEFAULT_CURRENCY) -> RaceDetail:
    """Normalize a per-race detail payload."""
    return RaceDetail(
        purse=parse_prize(raw.get("prize"), default_currency),
        participants=normalize_participants(raw.get("runners")),
        temperature=to_float(raw.get("temperature")),
    )
