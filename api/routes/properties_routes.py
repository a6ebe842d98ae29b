"""Property endpoints: list, fetch, create and delete.

Domain errors raised by the service (NotFound, AlreadyExists, provider
failures) are turned into JSON responses by the handlers registered in main.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from core.database import DbSession
from core.ratelimit import CREATE_PROPERTY_LIMIT, limiter
from repositories.property_repository import PropertyRepository
from schemas import (
    ErrorResponse,
    PropertyCreate,
    PropertyData,
    PropertyFilter,
    PropertyResponse,
    PropertySortBy,
    SortOrder,
)
from services.properties_service import (
    create_property,
    delete_property,
    get_property,
    list_properties,
)
from services.weatherstack_service import WeatherProvider

router = APIRouter(prefix="/api/properties", tags=["properties"])


def get_property_store(db: DbSession) -> PropertyRepository:
    return PropertyRepository(db)


def get_weather_provider(request: Request) -> WeatherProvider:
    """Client built in the lifespan and shared by all requests."""
    return request.app.state.weatherstack_client


PropertyStoreDep = Annotated[PropertyRepository, Depends(get_property_store)]
WeatherProviderDep = Annotated[WeatherProvider, Depends(get_weather_provider)]


def _to_response(data: PropertyData) -> PropertyResponse:
    return PropertyResponse.model_validate(data.model_dump())


@router.get("", response_model=list[PropertyResponse])
async def list_properties_endpoint(
    store: PropertyStoreDep,
    city: str | None = None,
    state: str | None = None,
    zip_code: Annotated[str | None, Query(alias="zipCode")] = None,
    sort_by: Annotated[PropertySortBy, Query(alias="sortBy")] = (
        PropertySortBy.CREATED_AT
    ),
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = SortOrder.DESC,
) -> list[PropertyResponse]:
    """List properties, optionally filtered by city, state and zip code.

    sortBy only accepts CREATED_AT.
    """
    property_filter = PropertyFilter(city=city, state=state, zip_code=zip_code)
    properties = await list_properties(store, property_filter, sort_order)
    return [_to_response(prop) for prop in properties]


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    responses={404: {"model": ErrorResponse, "description": "Property not found"}},
)
async def get_property_endpoint(
    property_id: str,
    store: PropertyStoreDep,
) -> PropertyResponse:
    return _to_response(await get_property(store, property_id))


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=201,
    responses={
        409: {"model": ErrorResponse, "description": "Property already exists"},
        502: {"model": ErrorResponse, "description": "Weather provider error"},
        503: {"model": ErrorResponse, "description": "Weather provider unavailable"},
    },
)
@limiter.limit(CREATE_PROPERTY_LIMIT)
async def create_property_endpoint(
    request: Request,
    body: PropertyCreate,
    store: PropertyStoreDep,
    weather: WeatherProviderDep,
) -> PropertyResponse:
    """Create a property. Coordinates and weather come from Weatherstack."""
    return _to_response(await create_property(store, weather, body))


@router.delete(
    "/{property_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse, "description": "Property not found"}},
)
async def delete_property_endpoint(
    property_id: str,
    store: PropertyStoreDep,
) -> None:
    await delete_property(store, property_id)
