"""Database session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.crewgate.core.db.engine import get_elevated_engine, get_engine


@asynccontextmanager
async def get_session(engine: AsyncEngine | None = None) -> AsyncGenerator[AsyncSession]:
    """Create a session on the regular engine (or the given override).

    Objects stay usable after commit (``expire_on_commit=False``). The session
    rolls back anything uncommitted when the block exits.
    """
    if engine is None:
        engine = get_engine()

    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@asynccontextmanager
async def get_elevated_session() -> AsyncGenerator[AsyncSession]:
    """Create a session on the elevated engine.

    Not for direct use by request handlers; go through ``ElevatedSessionGate``.
    """
    async with get_session(get_elevated_engine()) as session:
        yield session
