"""Casa Courses programme API client.

Two endpoints are consumed:

- ``GET {base}/programme?date=YYYY-MM-DD&venue=SOREC`` returns the day's
  meetings, each with its races (code, name, time, distance, starters,
  finished flag, finish order).
- ``GET {base}/race/{id}`` returns per-race detail: prize string, runners
  and the ambient temperature.

Only the programme call is load-bearing; detail calls feed best-effort
enrichment and their failures are the caller's to swallow.
"""

import logging
from datetime import date
from typing import Any

from turfdesk.scrapers.base import BaseScraper, ScraperError

logger = logging.getLogger(__name__)

BASE_URL = "https://pro.casacourses.com/api"


class FeedUnavailableError(ScraperError):
    """The primary programme fetch failed; the sync pass cannot continue."""

    pass


class CasaCoursesScraper(BaseScraper):
    """Fetches programme and race detail JSON from Casa Courses."""

    def __init__(self, base_url: str = BASE_URL, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls) -> "CasaCoursesScraper":
        """Build a client from process configuration."""
        from turfdesk.config import settings

        return cls(base_url=settings.casa_api_base, timeout=settings.feed_timeout)

    async def get_programme(self, race_date: date, venue: str) -> list[dict[str, Any]]:
        """Fetch the list of meetings for a date and venue token.

        Raises FeedUnavailableError on any transport, status or decoding
        failure, or when the body is not a programme object.
        """
        url = f"{self.base_url}/programme"
        try:
            data = await self.fetch_json(url, params={"date": race_date.isoformat(), "venue": venue})
        except ScraperError as e:
            raise FeedUnavailableError(f"Casa API error: {e}") from e

        if not isinstance(data, dict):
            raise FeedUnavailableError("Casa API error: unexpected programme payload")

        meetings = data.get("meetings") or []
        if not isinstance(meetings, list):
            raise FeedUnavailableError("Casa API error: 'meetings' is not a list")
        return [m for m in meetings if isinstance(m, dict)]

    async def get_race_detail(self, external_id: Any) -> dict[str, Any]:
        """Fetch prize, runners and temperature for one external race."""
        url = f"{self.base_url}/race/{external_id}"
        data = await self.fetch_json(url)
        if not isinstance(data, dict):
            raise ScraperError(f"Unexpected race detail payload for {external_id}")
        return data
