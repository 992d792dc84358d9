"""
Database Session Management

Builds the async SQLAlchemy engine and session factory from an explicit
``Settings`` value.
"""

from __future__ import annotations

from typing import Tuple

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import Settings
from .models import Base


def create_session_factory(
    settings: Settings,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create the engine and session factory for ``settings.database_url``.
    """
    engine_kwargs = {"echo": False, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs.update(pool_size=5, max_overflow=10)

    engine = create_async_engine(settings.database_url, **engine_kwargs)

    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, factory


async def init_models(engine: AsyncEngine) -> None:
    """
    Create all tables that do not exist yet.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
