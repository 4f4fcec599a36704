"""Async SQLAlchemy engine and session factory.

One engine with connection pooling for the whole process. Request handlers
get a session through the get_db dependency; background work (the
maintenance scheduler, CLI commands) opens its own sessions from
async_session_factory.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from assetsentinel.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=5,
    max_overflow=15,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_all() -> None:
    """Create every table from the ORM metadata (development bootstrap)."""
    from assetsentinel.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
