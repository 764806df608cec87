"""
Database configuration.

Async SQLAlchemy engine and session factory built from settings.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.config.settings import settings


def create_engine(database_url: str | None = None, *, pooled: bool = True) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Override for ``settings.database_url``
        pooled: Use NullPool when False (for short-lived task processes)
    """
    kwargs = {"echo": settings.database_echo}
    if not pooled:
        kwargs["poolclass"] = NullPool
    return create_async_engine(database_url or settings.database_url, **kwargs)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
