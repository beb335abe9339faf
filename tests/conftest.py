"""Shared test fixtures for turfdesk."""

from datetime import date
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from turfdesk.models.database import Base
from turfdesk.models.race import make_race_id
from turfdesk.sync.store import RaceStore

RACE_DATE = date(2026, 3, 14)


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test engine (stands in for async_session)."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def race_date() -> date:
    return RACE_DATE


@pytest.fixture
def sample_programme() -> dict:
    """Programme payload as returned by the Casa Courses feed."""
    return {
        "date": "2026-03-14",
        "meetings": [
            {
                "track": "CASABLANCA",
                "country": "MA",
                "races": [
                    {
                        "id": 101,
                        "code": "C1",
                        "name": "Prix Anfa",
                        "time_hm": "14:30",
                        "distance": "1600",
                        "starters": 10,
                        "finished": True,
                        "finish_order": [
                            {"position": 2, "number": 7},
                            {"position": 1, "number": "4"},
                            {"position": 3, "number": 9},
                        ],
                    },
                    {
                        "id": 102,
                        "code": "C2",
                        "name": "Prix du Maroc",
                        "time_hm": "15:00",
                        "distance": 2000,
                        "starters": 8,
                        "finished": True,
                        "finish_order": [3, 5, 1],
                    },
                    {
                        "id": 103,
                        "code": "C3",
                        "name": "Prix Atlas",
                        "time_hm": "15:30",
                        "distance": 1400,
                        "starters": 12,
                        "finished": False,
                        "finish_order": [],
                    },
                ],
            },
            {
                # Country marker missing; the venue alone decides
                "track": "Rabat-Souissi",
                "country": "",
                "races": [
                    {
                        "id": 201,
                        "code": "C1",
                        "name": "Prix Souissi",
                        "time_hm": "16:00",
                        "distance": 1800,
                        "starters": 9,
                        "finished": True,
                        "finish_order": [2, 6],
                    },
                ],
            },
            {
                "track": "Vincennes",
                "country": "FR",
                "races": [
                    {
                        "id": 901,
                        "code": "C1",
                        "name": "Prix de Paris",
                        "time_hm": "13:50",
                        "distance": 2700,
                        "starters": 14,
                        "finished": True,
                        "finish_order": [8, 3, 11],
                    },
                ],
            },
        ],
    }


@pytest.fixture
def sample_detail() -> dict:
    """Per-race detail payload."""
    return {
        "prize": "1 500 000 DH",
        "runners": [
            {"number": 2, "horse": "Bab Al Bahr", "jockey": "A. Amrani", "weight": "57,5"},
            {"number": 1, "horse": "Atlas Star", "jockey": None, "weight": None},
            {"number": "x", "horse": "Nameless"},
        ],
        "temperature": "21.5",
    }


@pytest.fixture
def fake_scraper(sample_programme, sample_detail) -> MagicMock:
    """Feed client stub returning the sample programme and detail."""
    scraper = MagicMock()
    scraper.get_programme = AsyncMock(return_value=sample_programme["meetings"])
    scraper.get_race_detail = AsyncMock(return_value=sample_detail)
    scraper.close = AsyncMock()
    return scraper


@pytest.fixture
def add_race(db_session):
    """Factory that stores a bare race the way an operator would."""

    async def _add(venue: str, race_number: int, race_date: date = RACE_DATE, **fields):
        store = RaceStore(db_session)
        return await store.create_race(
            id=fields.pop("id", make_race_id(race_date, venue, race_number)),
            date=race_date,
            venue=venue,
            race_number=race_number,
            **fields,
        )

    return _add
