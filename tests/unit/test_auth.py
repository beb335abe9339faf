"""Tests for session auth, CSRF and rate limiting middleware."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from turfdesk.auth import (
    AuthMiddleware,
    CSRFMiddleware,
    check_csrf_token,
    csrf_token,
    issue_csrf_token,
)
from turfdesk.rate_limit import RateLimitMiddleware


class FakeRequest:
    """Minimal request stub for middleware dispatch."""

    def __init__(self, path="/api/races", method="GET", user=None, headers=None, session=None):
        self.url = SimpleNamespace(path=path)
        self.method = method
        self.headers = headers or {}
        self.client = SimpleNamespace(host="10.0.0.1")
        self._session = session if session is not None else ({"user": user} if user else {})

    @property
    def session(self):
        return self._session


ADMIN = {"email": "admin@example.com", "name": "Admin"}


class TestAuthMiddleware:
    async def test_api_without_session_returns_401(self):
        call_next = AsyncMock()
        resp = await AuthMiddleware(MagicMock()).dispatch(FakeRequest(), call_next)
        assert resp.status_code == 401
        call_next.assert_not_awaited()

    async def test_page_without_session_redirects(self):
        resp = await AuthMiddleware(MagicMock()).dispatch(FakeRequest(path="/"), AsyncMock())
        assert resp.status_code in (302, 307)
        assert resp.headers["location"] == "/login"

    async def test_public_path_allowed(self):
        call_next = AsyncMock(return_value="ok")
        resp = await AuthMiddleware(MagicMock()).dispatch(FakeRequest(path="/health"), call_next)
        assert resp == "ok"

    async def test_session_allowed(self):
        call_next = AsyncMock(return_value="ok")
        resp = await AuthMiddleware(MagicMock()).dispatch(FakeRequest(user=ADMIN), call_next)
        assert resp == "ok"


class TestCSRF:
    def test_token_accepted_for_its_session(self):
        session = {}
        token = issue_csrf_token(session)
        assert session["_csrf_nonce"]
        assert check_csrf_token(session, token)

    def test_token_from_other_session_rejected(self):
        token = issue_csrf_token({})
        other = {}
        issue_csrf_token(other)
        assert not check_csrf_token(other, token)

    def test_garbage_rejected(self):
        session = {}
        issue_csrf_token(session)
        assert not check_csrf_token(session, "garbage")
        assert not check_csrf_token(session, "")
        assert not check_csrf_token({}, None)

    def test_expired_token_rejected(self):
        session = {}
        token = issue_csrf_token(session)
        assert not check_csrf_token(session, token, max_age=-1)

    async def test_post_without_token_rejected(self):
        req = FakeRequest(method="POST", user=ADMIN)
        resp = await CSRFMiddleware(MagicMock()).dispatch(req, AsyncMock())
        assert resp.status_code == 403

    async def test_post_with_token_allowed(self):
        session = {"user": ADMIN}
        data = await csrf_token(FakeRequest(session=session))
        req = FakeRequest(
            path="/api/sync/programme",
            method="POST",
            session=session,
            headers={"X-CSRF-Token": data["csrf_token"]},
        )
        call_next = AsyncMock(return_value="ok")

        assert await CSRFMiddleware(MagicMock()).dispatch(req, call_next) == "ok"


class TestRateLimit:
    async def test_limit_applies_to_api_only(self):
        limiter = RateLimitMiddleware(MagicMock(), max_requests=2, window=900)
        call_next = AsyncMock(return_value="ok")

        assert await limiter.dispatch(FakeRequest(), call_next) == "ok"
        assert await limiter.dispatch(FakeRequest(), call_next) == "ok"
        resp = await limiter.dispatch(FakeRequest(), call_next)
        assert resp.status_code == 429
        assert await limiter.dispatch(FakeRequest(path="/health"), call_next) == "ok"
        assert await limiter.dispatch(FakeRequest(path="/login"), call_next) == "ok"

    async def test_forwarded_for_used(self):
        limiter = RateLimitMiddleware(MagicMock(), max_requests=1, window=900)
        call_next = AsyncMock(return_value="ok")

        await limiter.dispatch(FakeRequest(headers={"x-forwarded-for": "1.1.1.1"}), call_next)
        resp = await limiter.dispatch(FakeRequest(headers={"x-forwarded-for": "2.2.2.2, 10.0.0.1"}), call_next)

        assert resp == "ok"

    def test_window_resets(self):
        limiter = RateLimitMiddleware(MagicMock(), max_requests=1, window=900)
        clock = MagicMock()
        clock.monotonic.side_effect = [0.0, 10.0, 901.0]

        with patch("turfdesk.rate_limit.time", clock):
            assert limiter.hit("1.1.1.1") == 0
            assert limiter.hit("1.1.1.1") == 890
            assert limiter.hit("1.1.1.1") == 0
