"""Tests for PropertyRepository against an in-memory SQLite database."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from repositories.property_repository import (
    DuplicateKeyError,
    PropertyRepository,
    build_property_filters,
    created_at_ordering,
)
from schemas import PropertyFilter, SortOrder
from tests.factories import PropertyCreateDataFactory, PropertyFactory, create_async


@pytest.mark.unit
class TestPropertyRepositoryInsert:
    async def test_insert_assigns_id_and_created_at(self, db_session: AsyncSession):
        repo = PropertyRepository(db_session)

        prop = await repo.insert(PropertyCreateDataFactory.build())

        assert prop.id
        assert prop.created_at is not None
        assert prop.latitude == 30.2672
        assert prop.weather_data == {"temperature": 22}

    async def test_inserted_ids_are_unique(self, db_session: AsyncSession):
        repo = PropertyRepository(db_session)

        first = await repo.insert(PropertyCreateDataFactory.build())
        second = await repo.insert(PropertyCreateDataFactory.build())

        assert first.id != second.id

    async def test_duplicate_address_raises_duplicate_key(
        self, db_session: AsyncSession
    ):
        repo = PropertyRepository(db_session)
        data = PropertyCreateDataFactory.build(street="5th")
        first = await repo.insert(data)
        first_id = first.id
        await db_session.commit()

        with pytest.raises(DuplicateKeyError):
            await repo.insert(data)

        # The original row survives the failed insert
        assert await repo.get_by_id(first_id) is not None
        assert len(await repo.list_all()) == 1

    async def test_partial_address_overlap_is_allowed(self, db_session: AsyncSession):
        repo = PropertyRepository(db_session)

        await repo.insert(PropertyCreateDataFactory.build(street="5th"))
        await repo.insert(PropertyCreateDataFactory.build(street="5th", zip_code="73344"))

        assert len(await repo.list_all()) == 2


@pytest.mark.unit
class TestPropertyRepositoryGetById:
    async def test_returns_property(self, db_session: AsyncSession):
        prop = await create_async(PropertyFactory, db_session)
        repo = PropertyRepository(db_session)

        found = await repo.get_by_id(prop.id)

        assert found is not None
        assert found.id == prop.id

    async def test_returns_none_for_missing_id(self, db_session: AsyncSession):
        repo = PropertyRepository(db_session)

        assert await repo.get_by_id("missing") is None


@pytest.mark.unit
class TestPropertyRepositoryDelete:
    async def test_delete_returns_true_then_false(self, db_session: AsyncSession):
        prop = await create_async(PropertyFactory, db_session)
        repo = PropertyRepository(db_session)

        assert await repo.delete_by_id(prop.id) is True
        assert await repo.delete_by_id(prop.id) is False

    async def test_delete_missing_returns_false(self, db_session: AsyncSession):
        repo = PropertyRepository(db_session)

        assert await repo.delete_by_id("missing") is False


@pytest.mark.unit
class TestPropertyRepositoryList:
    @pytest.fixture
    async def seeded(self, db_session: AsyncSession) -> list[str]:
        """Three properties created a minute apart; returns ids oldest first."""
        base = datetime(2024, 1, 1, tzinfo=UTC)
        rows = [
            ("Austin", "TX", "73301"),
            ("Austin", "TX", "73344"),
            ("Dallas", "TX", "75201"),
        ]
        ids = []
        for offset, (city, state, zip_code) in enumerate(rows):
            prop = await create_async(
                PropertyFactory,
                db_session,
                city=city,
                state=state,
                zip_code=zip_code,
                created_at=base + timedelta(minutes=offset),
            )
            ids.append(prop.id)
        return ids

    async def test_default_order_is_newest_first(self, db_session, seeded):
        repo = PropertyRepository(db_session)

        results = await repo.list_all()

        assert [p.id for p in results] == list(reversed(seeded))

    async def test_ascending_order(self, db_session, seeded):
        repo = PropertyRepository(db_session)

        results = await repo.list_all(sort_order=SortOrder.ASC)

        assert [p.id for p in results] == seeded

    async def test_filters_combine_with_and(self, db_session, seeded):
        repo = PropertyRepository(db_session)

        results = await repo.list_all(PropertyFilter(city="Austin", zip_code="73344"))

        assert [p.id for p in results] == [seeded[1]]

    async def test_single_field_filter(self, db_session, seeded):
        repo = PropertyRepository(db_session)

        results = await repo.list_all(PropertyFilter(city="Austin"))

        assert {p.id for p in results} == set(seeded[:2])

    async def test_no_match_returns_empty(self, db_session, seeded):
        repo = PropertyRepository(db_session)

        assert await repo.list_all(PropertyFilter(state="CA")) == []


@pytest.mark.unit
class TestQueryHelpers:
    def test_no_filter_builds_no_conditions(self):
        assert build_property_filters(None) == []

    def test_empty_values_are_skipped(self):
        conditions = build_property_filters(
            PropertyFilter(city="", state=None, zip_code="73301")
        )

        assert len(conditions) == 1
        assert "zip_code" in str(conditions[0])

    def test_all_fields_build_three_conditions(self):
        conditions = build_property_filters(
            PropertyFilter(city="Austin", state="TX", zip_code="73301")
        )

        assert len(conditions) == 3

    @pytest.mark.parametrize(
        ("sort_order", "expected"),
        [(SortOrder.ASC, "ASC"), (SortOrder.DESC, "DESC")],
    )
    def test_created_at_ordering(self, sort_order, expected):
        assert str(created_at_ordering(sort_order)).endswith(expected)
