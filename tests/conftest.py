"""pytest fixtures for Thumbcraft backend tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- engine: Function-scoped SQLite (aiosqlite) engine with tables created
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- png_bytes: Minimal payload that passes image sniffing
"""

import os
import tempfile
from typing import AsyncGenerator

# Settings are read when thumbcraft.app is imported; configure before any test module loads
os.environ["APP_ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["ASSET_PUBLISHER"] = "local"
os.environ["ASSET_DIR"] = tempfile.mkdtemp(prefix="thumbcraft-assets-")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from thumbcraft.core.database import create_engine, create_tables  # noqa: E402
from thumbcraft.uow import create_uow_factory  # noqa: E402

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests.

    Autouse fixture ensures TZ=UTC is set before any test runs.
    This prevents timezone-dependent behavior and ensures reproducible tests.
    """
    os.environ["TZ"] = "UTC"
    yield


@pytest.fixture
def png_bytes() -> bytes:
    """512-byte payload starting with the PNG signature."""
    return PNG_SIGNATURE + b"\x00" * 504


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Provide a fresh file-backed SQLite database per test.

    A file (rather than :memory:) lets several sessions see the same data,
    as they do against PostgreSQL.
    """
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'thumbcraft.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session.

    Uncommitted changes are rolled back after the test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory.

    Returns a callable that creates UoW instances bound to the test database.
    """
    return create_uow_factory(session_factory)
