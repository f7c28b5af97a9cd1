# backend/app/db.py
from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from .config import settings

# plain URLs from the environment are mapped onto their asyncio drivers
_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
}


class Base(DeclarativeBase):
    pass


def async_url(url: str) -> str:
    u = make_url(url)
    driver = _ASYNC_DRIVERS.get(u.drivername)
    if driver is None:
        return url
    return u.set(drivername=driver).render_as_string(hide_password=False)


def make_engine(url: Optional[str] = None) -> AsyncEngine:
    url = async_url(url or settings.database_url)
    u = make_url(url)
    if u.get_backend_name() == "sqlite" and u.database in (None, "", ":memory:"):
        # one shared connection, otherwise every session sees an empty database
        return create_async_engine(url, poolclass=StaticPool)
    if u.get_backend_name() == "sqlite":
        return create_async_engine(url)
    return create_async_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def init_db(engine: AsyncEngine) -> None:
    from . import models  # noqa: F401  registers tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
