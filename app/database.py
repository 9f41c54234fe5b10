"""
Database Connection Module
Builds the SQLAlchemy async engine and session factory for the durable backing.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
import logging

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    SQLite in-memory databases get a single shared connection, otherwise
    every pooled connection would see its own empty database.
    """
    kwargs = {"echo": echo}

    if database_url.startswith("sqlite"):
        if database_url.endswith("://") or ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = 5  # Connection pool size
        kwargs["max_overflow"] = 10  # Extra connections when pool is full

    return create_async_engine(database_url, **kwargs)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory - creates new database sessions."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False  # Objects remain accessible after commit
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Models must be registered on Base.metadata before create_all
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")
