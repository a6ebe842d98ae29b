"""Pytest configuration and shared fixtures.

This module provides:
- In-memory SQLite engine/session fixtures for repository tests
- In-memory store and weather provider fakes for service tests
- FastAPI app and HTTP client fixtures for route tests
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WEATHERSTACK_API_KEY", "test_weatherstack_key")

from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from core.config import clear_settings_cache
from core.database import Base
from core.wide_event import init_wide_event
from tests.fakes import FakeWeatherProvider, InMemoryPropertyStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def setup_wide_event():
    """Initialize wide_event context for all tests.

    In production this is done by middleware; in tests we do it here.
    """
    init_wide_event()
    yield


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database per test.

    StaticPool keeps every session on the same connection so the in-memory
    database survives across sessions.
    """
    import models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(
    test_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_maker() as session:
        yield session


# =============================================================================
# Fakes
# =============================================================================


@pytest.fixture
def property_store() -> InMemoryPropertyStore:
    return InMemoryPropertyStore()


@pytest.fixture
def weather_provider() -> FakeWeatherProvider:
    return FakeWeatherProvider()


@pytest.fixture
def weatherstack_payload() -> dict[str, Any]:
    """A successful Weatherstack /current response body."""
    return {
        "request": {
            "type": "Zipcode",
            "query": "73301 Austin, TX, USA",
            "language": "en",
            "unit": "m",
        },
        "location": {
            "name": "Austin",
            "country": "United States of America",
            "region": "Texas",
            "lat": "30.2672",
            "lon": "-97.7431",
            "timezone_id": "America/Chicago",
        },
        "current": {
            "observation_time": "05:30 PM",
            "temperature": 22,
            "weather_descriptions": ["Sunny"],
            "wind_speed": 11,
            "humidity": 40,
        },
    }


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def app(
    test_engine: AsyncEngine,
    session_maker: async_sessionmaker[AsyncSession],
    weather_provider: FakeWeatherProvider,
) -> AsyncGenerator[FastAPI]:
    """FastAPI app wired to the test database and the fake weather provider.

    ASGITransport does not run the lifespan, so app state is set here.
    """
    from main import create_app

    fastapi_app = create_app()
    fastapi_app.state.engine = test_engine
    fastapi_app.state.session_maker = session_maker
    fastapi_app.state.weatherstack_client = weather_provider
    fastapi_app.state.init_done = True
    fastapi_app.state.init_error = None

    yield fastapi_app


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing routes."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio backend for anyio (required by httpx)."""
    return "asyncio"
