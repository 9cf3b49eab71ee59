"""Shared fixtures.

Every test gets its own in-memory SQLite database with savepoints enabled, so
issuance and its retry path run against a real transactional store.
"""

import os

# Settings validate on import of main/core.ratelimit; these must come first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "true")

from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.config import clear_settings_cache
from core.database import Base, create_session_maker, enable_sqlite_savepoints
from core.wide_event import clear_wide_event, init_wide_event


@pytest.fixture(autouse=True)
def wide_event() -> Generator[None]:
    """Services write to the wide event; the middleware opens it in production."""
    init_wide_event(service_name="test-api")
    yield
    clear_wide_event()


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None]:
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine]:
    # StaticPool: one connection, otherwise each checkout sees an empty database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """A session for service and repository tests.

    Route tests must not use it alongside ``client``: both would share the
    single in-memory connection.
    """
    async with create_session_maker(test_engine)() as session:
        yield session


@pytest_asyncio.fixture
async def app(test_engine: AsyncEngine) -> AsyncGenerator[FastAPI]:
    """The real application, wired to the test engine without its lifespan."""
    from main import app as application

    application.state.engine = test_engine
    application.state.session_maker = create_session_maker(test_engine)
    application.state.init_done = True
    application.state.init_error = None
    yield application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
