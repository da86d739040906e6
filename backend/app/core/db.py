"""Async database session management helpers."""

from typing import Any, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


def _engine_options(url: str) -> dict[str, Any]:
    """Pool and isolation options for the configured backend.

    SQLite drivers reject the server pool arguments and the MySQL isolation
    level name, so they are only applied to networked backends.
    """

    options: dict[str, Any] = {"echo": settings.DEBUG}
    if make_url(url).get_backend_name() == "sqlite":
        return options
    options.update(
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        isolation_level=settings.DB_ISOLATION_LEVEL,
    )
    return options


def build_engine(url: str | None = None, **overrides: Any) -> AsyncEngine:
    url = url or settings.DATABASE_URL
    options = _engine_options(url)
    options.update(overrides)
    return create_async_engine(url, **options)


engine = build_engine()

SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""

    async with SessionLocal() as session:
        yield session
