"""
Shared fixtures. The database URL is pinned to an in-memory SQLite engine
before any ``codecoach`` module builds its engine.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("GROQ_API_KEY", None)

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codecoach.core.database import build_engine, init_db
from codecoach.core.store import AnalyticsStore
from codecoach.utils.normalizer import sample_quiz


@pytest.fixture
def quiz():
    return sample_quiz()


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def store(sessionmaker):
    return AnalyticsStore(sessionmaker)
