"""ASGI app: admin API, Google login and the programme auto-sync."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from turfdesk import __version__
from turfdesk.api import races, results, sync
from turfdesk.auth import AuthMiddleware, CSRFMiddleware, router as auth_router
from turfdesk.config import settings
from turfdesk.models.database import init_db
from turfdesk.rate_limit import RateLimitMiddleware
from turfdesk.scheduler.activity_log import log_system
from turfdesk.scheduler.manager import scheduler_manager

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _auto_sync_wanted() -> bool:
    return settings.sync_enabled and not settings.disable_background


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"turfdesk {__version__} starting")
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    await init_db()

    auto_sync = _auto_sync_wanted()
    if auto_sync:
        await scheduler_manager.start()
        interval = scheduler_manager.setup_auto_sync(settings.sync_interval_seconds)
        log_system(f"Auto-sync scheduled every {interval}s for {settings.sync_default_venue}")
    else:
        logger.info("Auto-sync off")

    try:
        yield
    finally:
        if auto_sync:
            await scheduler_manager.stop()
        logger.info("turfdesk stopped")


app = FastAPI(
    title="turfdesk",
    description="Race and results admin with Casa Courses programme sync",
    version=__version__,
    lifespan=lifespan,
)

# Last added runs first: session, rate limit, auth, CSRF
app.add_middleware(CSRFMiddleware)
app.add_middleware(AuthMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    same_site="lax",
    https_only=not settings.debug,
)

app.include_router(auth_router)
app.include_router(races.router, prefix="/api/races", tags=["races"])
app.include_router(results.router, prefix="/api/results", tags=["results"])
app.include_router(sync.router, prefix="/api/sync", tags=["sync"])


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "turfdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
