"""Shared HTTP plumbing for the JSON feeds turfdesk consumes."""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class ScraperError(Exception):
    """A feed request failed or returned something unusable."""


class BaseScraper:
    """Owns one lazily created ``httpx.AsyncClient``; call ``close()`` when done."""

    DEFAULT_HEADERS = {
        "User-Agent": "turfdesk/0.1 (+results sync)",
        "Accept": "application/json",
        "Accept-Language": "fr-MA,fr;q=0.9,en;q=0.8",
    }

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.DEFAULT_HEADERS,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def fetch_json(self, url: str, params: Optional[dict] = None) -> Any:
        """GET ``url`` and decode the body.

        Non-2xx statuses, transport failures and undecodable bodies all
        surface as ScraperError.
        """
        logger.info(f"GET {url} {params or ''}".rstrip())
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"{url} answered HTTP {e.response.status_code}")
            raise ScraperError(f"HTTP {e.response.status_code}: {url}") from e
        except httpx.RequestError as e:
            logger.error(f"Request to {url} failed: {e!r}")
            raise ScraperError(f"Request failed: {url}") from e

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{url} returned a non-JSON body")
            raise ScraperError(f"Invalid JSON: {url}") from e

    @staticmethod
    def clean_text(text: Optional[str]) -> Optional[str]:
        """Collapse runs of whitespace; None stays None."""
        if text is None:
            return None
        return " ".join(str(text).split())
