"""API clients for external racing data."""

from turfdesk.scrapers.base import BaseScraper, ScraperError
from turfdesk.scrapers.casa import CasaCoursesScraper, FeedUnavailableError

__all__ = [
    "BaseScraper",
    "ScraperError",
    "CasaCoursesScraper",
    "FeedUnavailableError",
]
