"""Property business logic.

This module handles:
- Listing properties with optional filters and created_at ordering
- Fetching and deleting a single property (missing ids raise NotFound)
- Creating a property: fetch weather, extract coordinates, then insert

Creation never writes before the weather lookup and coordinate parsing have
both succeeded, so provider failures leave nothing behind. The only store
signals translated here are the address conflict (AlreadyExists) and the
missing row (NotFound); every other error propagates unchanged.

Routes should delegate all property business logic to this module.
"""

import logging

from core.wide_event import set_wide_event_fields
from models import Property
from repositories.property_repository import DuplicateKeyError, PropertyStore
from schemas import (
    PropertyCreate,
    PropertyCreateData,
    PropertyData,
    PropertyFilter,
    SortOrder,
)
from services.weatherstack_service import AddressQuery, WeatherProvider

logger = logging.getLogger(__name__)


class PropertyNotFoundError(Exception):
    """Raised when no property has the requested id."""

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Property with id {property_id} not found")


class PropertyAlreadyExistsError(Exception):
    """Raised when a property with the same address already exists."""

    pass


def _to_property_data(prop: Property) -> PropertyData:
    return PropertyData.model_validate(prop)


async def list_properties(
    store: PropertyStore,
    property_filter: PropertyFilter | None = None,
    sort_order: SortOrder = SortOrder.DESC,
) -> list[PropertyData]:
    """List properties matching the filter. An empty list is a normal result."""
    properties = await store.list_all(property_filter, sort_order)
    return [_to_property_data(prop) for prop in properties]


async def get_property(store: PropertyStore, property_id: str) -> PropertyData:
    """Get a property by id.

    Raises:
        PropertyNotFoundError: If the property does not exist
    """
    prop = await store.get_by_id(property_id)
    if prop is None:
        raise PropertyNotFoundError(property_id)
    return _to_property_data(prop)


async def create_property(
    store: PropertyStore,
    weather: WeatherProvider,
    data: PropertyCreate,
) -> PropertyData:
    """Create a property enriched with coordinates and current weather.

    Args:
        store: Property store the record is written to
        weather: Provider used for the weather snapshot and geocoding
        data: Address of the new property

    Returns:
        The stored property, including its id and created_at

    Raises:
        WeatherProviderError: Weatherstack reported an error
        WeatherProviderUnavailableError: Weatherstack could not be reached
        CoordinateParseError: Weatherstack returned non-numeric coordinates
        PropertyAlreadyExistsError: The address is already registered
    """
    snapshot = await weather.get_current_weather(
        AddressQuery(city=data.city, state=data.state, zip_code=data.zip_code)
    )
    coordinates = weather.extract_coordinates(snapshot.location)

    create_data = PropertyCreateData(
        city=data.city,
        street=data.street,
        state=data.state,
        zip_code=data.zip_code,
        latitude=coordinates.latitude,
        longitude=coordinates.longitude,
        weather_data=snapshot.current,
    )

    try:
        prop = await store.insert(create_data)
    except DuplicateKeyError as e:
        logger.info(
            "property.create.conflict",
            extra={"city": data.city, "state": data.state, "zip_code": data.zip_code},
        )
        raise PropertyAlreadyExistsError("Property already exists") from e

    logger.info(
        "property.created",
        extra={
            "property_id": prop.id,
            "city": prop.city,
            "state": prop.state,
            "zip_code": prop.zip_code,
        },
    )
    set_wide_event_fields(property_id=prop.id)

    return _to_property_data(prop)


async def delete_property(store: PropertyStore, property_id: str) -> None:
    """Delete a property by id.

    Raises:
        PropertyNotFoundError: If no property was deleted
    """
    deleted = await store.delete_by_id(property_id)
    if not deleted:
        raise PropertyNotFoundError(property_id)

    logger.info("property.deleted", extra={"property_id": property_id})
    set_wide_event_fields(property_id=property_id)
