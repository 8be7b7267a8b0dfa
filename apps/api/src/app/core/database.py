"""
Database Configuration

Async SQLAlchemy engine, session factory and the FastAPI session dependency.
Every request gets its own session; workflow code receives it as an argument.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def _engine_kwargs() -> dict:
    kwargs: dict = {
        "echo": settings.database_echo,
        "pool_pre_ping": True,
    }
    if settings.database_url.startswith("postgresql"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_timeout_seconds,
            connect_args={
                "timeout": settings.database_timeout_seconds,
                "command_timeout": settings.database_timeout_seconds,
            },
        )
    return kwargs


engine = create_async_engine(settings.database_url, **_engine_kwargs())

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields a database session.

    Uncommitted work is rolled back when the request fails.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Verify the database is reachable.

    When DATABASE_AUTO_CREATE is set (local development), tables are created
    from the model metadata instead of running migrations.
    """
    # Import models so they register on Base.metadata
    import app.modules.models  # noqa: F401

    async with engine.begin() as conn:
        await asyncio.wait_for(
            conn.execute(text("SELECT 1")),
            timeout=settings.database_timeout_seconds,
        )
        if settings.database_auto_create:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created from metadata")


async def close_db() -> None:
    """Dispose of the engine connection pool."""
    await engine.dispose()
