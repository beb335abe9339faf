"""Runtime settings, read from ``TURFDESK_*`` variables or a local ``.env``."""

import secrets
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Per-process fallback; sessions do not survive a restart without TURFDESK_SECRET_KEY
_FALLBACK_SECRET = secrets.token_hex(32)

# Floor for the auto-sync period
MIN_SYNC_INTERVAL_SECONDS = 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """UTC now without tzinfo, the form stored in SQLite columns."""
    return utc_now().replace(tzinfo=None)


def utc_today() -> date:
    return utc_now().date()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TURFDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    db_path: Path = Path("./data/turfdesk.db")

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"
    secret_key: str = ""
    disable_background: bool = False

    # Casa Courses feed
    casa_api_base: str = "https://pro.casacourses.com/api"
    feed_timeout: float = 30.0
    sync_enabled: bool = True
    sync_interval_seconds: int = 600
    sync_default_venue: str = "SOREC"

    # Admin login
    google_client_id: str = ""
    google_client_secret: str = ""
    allowed_emails: str = ""  # comma separated; empty means nobody gets in

    def model_post_init(self, __context) -> None:
        if not self.secret_key:
            object.__setattr__(self, "secret_key", _FALLBACK_SECRET)

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.db_path}"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
