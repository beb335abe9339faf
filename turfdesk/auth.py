"""Admin authentication: Google sign-in, session guard and CSRF tokens.

Only the addresses listed in ``TURFDESK_ALLOWED_EMAILS`` may sign in. A
signed-in admin is kept in the Starlette session under ``"user"``.
"""

import hmac
import logging
import secrets
from typing import Optional

from authlib.integrations.starlette_client import OAuth, OAuthError
from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from itsdangerous import BadSignature, URLSafeTimedSerializer
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from turfdesk.config import settings

logger = logging.getLogger(__name__)

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"

# Reachable without a session
PUBLIC_PATHS = {"/login", "/auth/callback", "/health"}

# Methods that never change state and skip the CSRF check
SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}
CSRF_HEADER = "X-CSRF-Token"
CSRF_TOKEN_MAX_AGE = 8 * 3600

oauth = OAuth()
if settings.google_client_id:
    oauth.register(
        name="google",
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        server_metadata_url=GOOGLE_METADATA_URL,
        client_kwargs={"scope": "openid email profile"},
    )

_csrf_signer = URLSafeTimedSerializer(settings.secret_key, salt="turfdesk-csrf")


def session_user(request) -> Optional[dict]:
    """The signed-in admin, or None."""
    return request.session.get("user")


def allowed_emails() -> set[str]:
    return {e.strip().lower() for e in settings.allowed_emails.split(",") if e.strip()}


def issue_csrf_token(session: dict) -> str:
    """Sign the session's CSRF nonce, creating the nonce on first use."""
    nonce = session.get("_csrf_nonce")
    if not nonce:
        nonce = secrets.token_urlsafe(24)
        session["_csrf_nonce"] = nonce
    return _csrf_signer.dumps(nonce)


def check_csrf_token(session: dict, token: Optional[str], max_age: int = CSRF_TOKEN_MAX_AGE) -> bool:
    """True if the token was issued for this session and has not expired."""
    nonce = session.get("_csrf_nonce")
    if not nonce or not token:
        return False
    try:
        signed_nonce = _csrf_signer.loads(token, max_age=max_age)
    except BadSignature:
        return False
    return hmac.compare_digest(str(signed_nonce), nonce)


class AuthMiddleware(BaseHTTPMiddleware):
    """Require a signed-in admin outside PUBLIC_PATHS.

    API callers get a 401 JSON body; browsers are sent to the login flow.
    """

    async def dispatch(self, request, call_next):
        path = request.url.path
        if path in PUBLIC_PATHS or session_user(request):
            return await call_next(request)

        if path.startswith("/api/"):
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)
        return RedirectResponse(url="/login")


class CSRFMiddleware(BaseHTTPMiddleware):
    """Reject state-changing requests without a valid X-CSRF-Token header."""

    async def dispatch(self, request, call_next):
        if request.method in SAFE_METHODS or request.url.path == "/auth/callback":
            return await call_next(request)

        if not check_csrf_token(request.session, request.headers.get(CSRF_HEADER)):
            logger.warning(f"CSRF check failed: {request.method} {request.url.path}")
            return JSONResponse({"detail": "CSRF validation failed"}, status_code=403)
        return await call_next(request)


router = APIRouter()


@router.get("/login")
async def login(request: Request):
    """Start Google sign-in."""
    if not settings.google_client_id:
        return JSONResponse({"detail": "Google sign-in is not configured"}, status_code=503)
    callback_url = str(request.url_for("auth_callback"))
    return await oauth.google.authorize_redirect(request, callback_url)


@router.get("/auth/callback")
async def auth_callback(request: Request):
    try:
        token = await oauth.google.authorize_access_token(request)
    except OAuthError as e:
        logger.error(f"Google sign-in failed: {e}")
        return JSONResponse({"detail": "Authentication failed"}, status_code=401)

    profile = token.get("userinfo") or {}
    email = (profile.get("email") or "").lower()
    if email not in allowed_emails():
        logger.warning(f"Sign-in refused for {email or 'unknown address'}")
        return JSONResponse({"detail": "Access denied"}, status_code=403)

    request.session["user"] = {"email": email, "name": profile.get("name", "")}
    logger.info(f"Admin signed in: {email}")
    return RedirectResponse(url="/", status_code=302)


@router.get("/api/csrf-token")
async def csrf_token(request: Request):
    """Token to send back in the X-CSRF-Token header."""
    return {"csrf_token": issue_csrf_token(request.session)}


@router.get("/logout")
async def logout(request: Request):
    request.session.clear()
    return RedirectResponse(url="/login")
