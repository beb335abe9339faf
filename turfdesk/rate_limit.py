"""Per-IP request limit on the JSON API (fixed window, in memory)."""

import logging
import time
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"
MAX_REQUESTS = 100
WINDOW_SECONDS = 15 * 60


@dataclass
class _Window:
    started: float
    count: int = 0


def client_ip(request) -> str:
    """Caller address; the first X-Forwarded-For hop when behind the proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow at most ``max_requests`` API calls per client per window."""

    def __init__(self, app, max_requests: int = MAX_REQUESTS, window: int = WINDOW_SECONDS):
        super().__init__(app)
        self.max_requests = max_requests
        self.window = window
        self._windows: dict[str, _Window] = {}

    def _prune(self, now: float) -> None:
        expired = [ip for ip, w in self._windows.items() if now - w.started >= self.window]
        for ip in expired:
            del self._windows[ip]

    def hit(self, ip: str) -> int:
        """Count a request; returns seconds to wait, or 0 when allowed."""
        now = time.monotonic()
        window = self._windows.get(ip)
        if window is None or now - window.started >= self.window:
            if len(self._windows) > 10_000:
                self._prune(now)
            window = self._windows[ip] = _Window(started=now)

        if window.count >= self.max_requests:
            return max(1, int(window.started + self.window - now))
        window.count += 1
        return 0

    async def dispatch(self, request, call_next):
        path = request.url.path
        if not path.startswith(API_PREFIX):
            return await call_next(request)

        ip = client_ip(request)
        retry_after = self.hit(ip)
        if retry_after:
            logger.warning(f"Rate limit hit: {ip} on {path}")
            return JSONResponse(
                {"detail": "Too many requests, try again later"},
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
