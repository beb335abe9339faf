"""Async engine, session factory and schema setup."""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from turfdesk.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


# A sync run and admin requests may write at the same time: wait, don't fail
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    connect_args={"timeout": 30},
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# Columns added after the first release: (table, column, DDL type)
ADDED_COLUMNS = [
    ("races", "weather_temp", "FLOAT"),
    ("races", "purse_currency", "VARCHAR(10) DEFAULT 'DH'"),
]


async def _add_missing_columns(conn: AsyncConnection) -> None:
    """Bring tables created by an older release up to the current models."""
    for table, column, ddl in ADDED_COLUMNS:
        rows = await conn.execute(text(f"PRAGMA table_info({table})"))
        if column in {row[1] for row in rows}:
            continue
        await conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
        logger.info(f"Added column {table}.{column}")


async def init_db() -> None:
    """Create tables and indexes, then apply column migrations."""
    from turfdesk.models import race  # noqa: F401  (registers the models)

    async with engine.begin() as conn:
        await conn.execute(text("PRAGMA journal_mode=WAL"))
        await conn.execute(text("PRAGMA busy_timeout=30000"))
        await conn.run_sync(Base.metadata.create_all)
        await _add_missing_columns(conn)

    logger.info(f"Database ready at {settings.db_path}")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session per request."""
    async with async_session() as session:
        yield session
