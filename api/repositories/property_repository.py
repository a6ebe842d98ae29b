"""Repository for property records.

The repository speaks in store-neutral terms: a unique-address conflict on
insert raises DuplicateKeyError, a delete that matched nothing returns False,
and every other database failure is wrapped in StorageError. Callers never
see driver error codes.
"""

from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import ColumnElement, UnaryExpression, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import ADDRESS_CONSTRAINT_NAME, Property
from repositories.utils import log_slow_query
from schemas import PropertyCreateData, PropertyFilter, SortOrder

# SQLite names the columns instead of the constraint in its error message
_SQLITE_ADDRESS_CONFLICT = (
    "properties.city, properties.street, properties.state, properties.zip_code"
)


class StorageError(Exception):
    """Any store failure other than an address conflict."""

    pass


class DuplicateKeyError(Exception):
    """A property with the same (city, street, state, zip_code) already exists."""

    pass


class PropertyStore(Protocol):
    async def list_all(
        self,
        property_filter: PropertyFilter | None = None,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> Sequence[Property]: ...

    async def get_by_id(self, property_id: str) -> Property | None: ...

    async def insert(self, data: PropertyCreateData) -> Property: ...

    async def delete_by_id(self, property_id: str) -> bool: ...


def build_property_filters(
    property_filter: PropertyFilter | None,
) -> list[ColumnElement[bool]]:
    """Equality predicates for every populated filter field."""
    if property_filter is None:
        return []

    conditions: list[ColumnElement[bool]] = []
    if property_filter.city:
        conditions.append(Property.city == property_filter.city)
    if property_filter.state:
        conditions.append(Property.state == property_filter.state)
    if property_filter.zip_code:
        conditions.append(Property.zip_code == property_filter.zip_code)
    return conditions


def created_at_ordering(sort_order: SortOrder) -> UnaryExpression:
    if sort_order == SortOrder.ASC:
        return Property.created_at.asc()
    return Property.created_at.desc()


def _is_address_conflict(error: IntegrityError) -> bool:
    message = str(error.orig)
    return ADDRESS_CONSTRAINT_NAME in message or _SQLITE_ADDRESS_CONFLICT in message


class PropertyRepository:
    """SQLAlchemy implementation of PropertyStore."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @log_slow_query("list_properties")
    async def list_all(
        self,
        property_filter: PropertyFilter | None = None,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> Sequence[Property]:
        """Properties matching all populated filter fields, by created_at."""
        stmt = (
            select(Property)
            .where(*build_property_filters(property_filter))
            .order_by(created_at_ordering(sort_order))
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError("Failed to list properties") from e
        return result.scalars().all()

    @log_slow_query("get_property_by_id")
    async def get_by_id(self, property_id: str) -> Property | None:
        try:
            result = await self.db.execute(
                select(Property).where(Property.id == property_id)
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to load property") from e
        return result.scalar_one_or_none()

    @log_slow_query("insert_property")
    async def insert(self, data: PropertyCreateData) -> Property:
        """Insert a property and flush so id/created_at are populated.

        Does NOT commit; the caller owns the transaction. On a conflict the
        session is rolled back to keep it usable.

        Raises:
            DuplicateKeyError: The address tuple already exists.
            StorageError: Any other database failure.
        """
        prop = Property(**data.model_dump())
        self.db.add(prop)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_address_conflict(e):
                raise DuplicateKeyError(
                    "A property at this address already exists"
                ) from e
            raise StorageError("Failed to insert property") from e
        except SQLAlchemyError as e:
            raise StorageError("Failed to insert property") from e
        return prop

    @log_slow_query("delete_property")
    async def delete_by_id(self, property_id: str) -> bool:
        """Delete by id. Returns False when no row matched."""
        try:
            result = await self.db.execute(
                delete(Property).where(Property.id == property_id)
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to delete property") from e
        return (result.rowcount or 0) > 0
