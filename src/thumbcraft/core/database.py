"""Database engine and session factory setup."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel


def create_engine(db_url: str, pool_size: int = 20) -> AsyncEngine:
    """Create the async engine.

    Args:
        db_url: Connection URL (postgresql+psycopg://... in production,
            sqlite+aiosqlite://... for local runs and tests)
        pool_size: Maximum number of pooled connections (ignored for SQLite)

    Returns:
        Configured AsyncEngine
    """
    if db_url.startswith("sqlite"):
        return create_async_engine(db_url, echo=False)

    return create_async_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=0,  # No overflow beyond pool_size
        pool_pre_ping=True,  # Verify connections before using
        echo=False,  # SQL is not logged, structlog covers application events
    )


def setup_db_session(db_url: str, pool_size: int = 20) -> async_sessionmaker[AsyncSession]:
    """Create async database session factory.

    Args:
        db_url: Database connection URL
        pool_size: Maximum number of connections in the pool

    Returns:
        Async session factory for creating database sessions
    """
    engine = create_engine(db_url, pool_size)

    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all SQLModel tables (SQLite/dev only; PostgreSQL uses Alembic)."""
    # Registers every table on SQLModel.metadata
    import thumbcraft.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
