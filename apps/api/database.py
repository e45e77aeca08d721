"""
Database engine and session factory helpers.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config import settings


Base = declarative_base()


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine for the configured database URL."""
    url = database_url or settings.DATABASE_URL
    options = {"pool_pre_ping": True}
    if url.startswith("postgresql"):
        options["pool_timeout"] = settings.DATABASE_POOL_TIMEOUT_SECONDS
        options["connect_args"] = {"timeout": settings.DATABASE_POOL_TIMEOUT_SECONDS}
    return create_async_engine(url, **options)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
