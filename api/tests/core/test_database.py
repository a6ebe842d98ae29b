"""Tests for core.database engine helpers and health checks."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from core.config import Settings
from core.database import (
    check_db_connection,
    comprehensive_health_check,
    create_engine,
    create_tables,
    get_db,
    get_pool_status,
)


def _sqlite_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:", weatherstack_api_key="key"
    )


@pytest.mark.unit
class TestCreateEngine:
    async def test_sqlite_uses_null_pool(self):
        engine = create_engine(_sqlite_settings())
        try:
            assert isinstance(engine.sync_engine.pool, NullPool)
        finally:
            await engine.dispose()


@pytest.mark.unit
class TestCreateTables:
    async def test_creates_properties_table(self):
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:", poolclass=StaticPool
        )
        try:
            await create_tables(engine)
            # Second call is a no-op on existing tables
            await create_tables(engine)

            async with engine.connect() as conn:
                tables = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
            assert "properties" in tables
        finally:
            await engine.dispose()


@pytest.mark.unit
class TestHealthChecks:
    async def test_check_db_connection_succeeds(self, test_engine):
        await check_db_connection(test_engine)

    async def test_pool_status_none_for_static_pool(self, test_engine):
        assert get_pool_status(test_engine) is None

    async def test_comprehensive_health_check(self, test_engine):
        result = await comprehensive_health_check(test_engine)

        assert result == {"database": True, "pool": None}


@pytest.mark.unit
class TestGetDb:
    async def test_commits_on_success(self, session_maker):
        request = MagicMock()
        request.app.state.session_maker = session_maker

        gen = get_db(request)
        session = await gen.__anext__()
        assert session.is_active

        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

    async def test_reraises_on_failure(self, session_maker):
        request = MagicMock()
        request.app.state.session_maker = session_maker

        gen = get_db(request)
        await gen.__anext__()

        with pytest.raises(RuntimeError, match="boom"):
            await gen.athrow(RuntimeError("boom"))
