"""
DevCamper Backend — Database Session Management
================================================

What:  The async engine, the session factory, the declarative Base shared by
       Bootcamp/Course/User, and the per-request session dependency.
How:   One transaction per request: the dependency commits after the
       handler returns and rolls back if anything raised.
Who:   Routes (through Depends), the health check (engine) and Alembic (Base).

Connection Pooling:
    pool_size / max_overflow come from settings (defaults 20 + 10).
    pool_pre_ping validates connections before use.
    pool_recycle=3600 recycles connections every hour.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from devcamper.config import settings


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# expire_on_commit=False: serialized records must stay readable after the
# request transaction commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Declarative base for the bootcamps, courses and users tables.

    Alembic autogenerate compares migrations against Base.metadata.
    """
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped AsyncSession.

    A service that writes (create bootcamp, add course, recompute the
    average cost) only flushes; the commit here makes those writes atomic
    per request. Exceptions roll back and propagate to the app handlers.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close pooled connections; called from the lifespan on shutdown."""
    await engine.dispose()
