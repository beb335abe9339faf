"""Centralised venue registry, the single source of truth for tracked racecourses.

The programme feed reports venues under several spellings and carries a
country marker that is sometimes wrong or missing, so inclusion is decided
by this allow-list alone. Aliases collapse every known spelling of a
course onto one canonical display name.
"""
import logging
import re
import unicodedata
from typing import Optional

logger = logging.getLogger(__name__)

# Canonical display names for the courses we track
TRACKED_VENUES = [
    "Casablanca-Anfa",
    "Rabat",
    "El Jadida",
    "Settat",
    "Marrakech",
    "Meknès",
    "Khemisset",
]

# Venue aliases: map alternative names (in key form) to canonical display name
VENUE_ALIASES = {
    # Casablanca: the feed alternates between the club and the city
    "casa anfa": "Casablanca-Anfa",
    "casablanca": "Casablanca-Anfa",
    "anfa": "Casablanca-Anfa",
    "casa": "Casablanca-Anfa",
    # Rabat track is the Souissi racecourse
    "rabat souissi": "Rabat",
    "souissi": "Rabat",
    "eljadida": "El Jadida",
    "marrakesh": "Marrakech",
    "khemissat": "Khemisset",
}

_WHITESPACE = re.compile(r"\s+")


def venue_key(venue: Optional[str]) -> str:
    """Normalize a venue name into a lookup key.

    Lowercase, accents stripped, hyphens/underscores as spaces, whitespace
    collapsed: "  MEKNÈS " -> "meknes", "Casablanca-Anfa" -> "casablanca anfa".
    """
    if not venue:
        return ""
    decomposed = unicodedata.normalize("NFKD", venue)
    v = "".join(c for c in decomposed if not unicodedata.combining(c)).lower()
    v = v.replace("-", " ").replace("_", " ")
    return _WHITESPACE.sub(" ", v).strip()


# Build reverse lookup: key -> canonical name
_KEY_TO_CANONICAL: dict[str, str] = {venue_key(v): v for v in TRACKED_VENUES}
for _alias, _canonical in VENUE_ALIASES.items():
    if _canonical not in TRACKED_VENUES:
        raise ValueError(f"Alias {_alias!r} points at untracked venue {_canonical!r}")
    _KEY_TO_CANONICAL[venue_key(_alias)] = _canonical


def canonical_venue(venue: Optional[str]) -> Optional[str]:
    """Return the canonical display name for a venue, or None if untracked."""
    return _KEY_TO_CANONICAL.get(venue_key(venue))


def venue_match_key(venue: Optional[str]) -> str:
    """Key used to compare two venue names for equality.

    Tracked venues compare by canonical name, so a race stored as
    "Casa-Anfa" matches a feed meeting reported as "CASABLANCA". Untracked
    names fall back to the plain key (case/spacing/accent-insensitive).
    """
    return venue_key(canonical_venue(venue) or venue)


def venue_slug(venue: str) -> str:
    """Convert venue name to URL/ID slug (e.g., 'casablanca-anfa').

    Aliases resolve to the canonical slug so every spelling of a course
    produces the same race IDs.
    """
    return venue_match_key(venue).replace(" ", "-").replace("'", "")
