# teachtune/db/session.py
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import create_engine as create_sync_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from teachtune.core.config import Settings, get_settings
from teachtune.db.base import Base
from teachtune.models import lesson, student  # noqa: F401

settings = get_settings()

# Async driver -> synchronous driver used for schema maintenance
_SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql",
    "sqlite+aiosqlite": "sqlite",
}


def _engine_options(settings: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": False}
    if settings.APP_ENV == "test":
        # TestClient and pytest-asyncio run separate event loops
        options["poolclass"] = NullPool
    return options


engine = create_async_engine(settings.DB_URL, **_engine_options(settings))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async SQLAlchemy session.

    Services decide when to commit; the session is closed (and anything
    uncommitted rolled back) when the request completes.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """
    Create the students and lessons tables if they are missing.

    Called from the application lifespan. Existing tables are left alone.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def sync_database_url(async_url: str) -> URL:
    """
    Same database, reached through the matching synchronous driver
    (asyncpg -> psycopg2, aiosqlite -> pysqlite).
    """
    url = make_url(async_url)
    drivername = _SYNC_DRIVERS.get(url.drivername)
    if drivername is None:
        return url
    return url.set(drivername=drivername)


def reset_schema_sync() -> None:
    """
    Drop and recreate every table through a synchronous engine.

    Runs outside any event loop, which makes it safe for plain pytest
    fixtures. Never call it from application code: all data is lost.
    """
    sync_engine = create_sync_engine(sync_database_url(settings.DB_URL))
    try:
        with sync_engine.begin() as conn:
            Base.metadata.drop_all(bind=conn)
            Base.metadata.create_all(bind=conn)
    finally:
        sync_engine.dispose()
