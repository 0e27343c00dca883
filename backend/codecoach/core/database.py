import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from codecoach.core.config import settings
from codecoach.models.db import Base


logger = logging.getLogger(__name__)


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite") and ":memory:" in url:
        # one shared connection, otherwise every checkout sees an empty database
        return create_async_engine(url, future=True, echo=False, poolclass=StaticPool)
    return create_async_engine(url, future=True, echo=False)


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_db(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug("Database tables ensured", extra={"url": bind.url.render_as_string(hide_password=True)})
