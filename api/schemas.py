"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SortOrder(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


class PropertySortBy(StrEnum):
    """Sortable columns. Only the creation timestamp is supported."""

    CREATED_AT = "CREATED_AT"


class PropertyFilter(BaseModel):
    """Equality predicates for listing properties, AND-ed together.

    None or empty values impose no constraint.
    """

    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class PropertyCreate(BaseModel):
    """Request to create a property. Coordinates and weather are not accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    city: str = Field(min_length=1, max_length=255)
    street: str = Field(min_length=1, max_length=255)
    state: str = Field(min_length=1, max_length=64)
    zip_code: str = Field(min_length=1, max_length=16)


class PropertyCreateData(BaseModel):
    """Fully enriched row handed to the store on insert.

    id and created_at are assigned by the store.
    """

    city: str
    street: str
    state: str
    zip_code: str
    latitude: float
    longitude: float
    weather_data: dict[str, Any]


class PropertyData(BaseModel):
    """Service-layer representation of a stored property."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    city: str
    street: str
    state: str
    zip_code: str
    latitude: float
    longitude: float
    weather_data: dict[str, Any]
    created_at: datetime


class PropertyResponse(PropertyData):
    """Property as returned by the API (camelCase field names)."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ErrorResponse(BaseModel):
    """Error body with a stable machine-readable code."""

    detail: str
    code: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class PoolStatusResponse(BaseModel):
    """Database connection pool status."""

    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(BaseModel):
    """Detailed health check response with component status."""

    status: str
    service: str
    database: bool
    pool: PoolStatusResponse | None = None
    # closed, open or half_open; None when the provider has no breaker
    weather_circuit: str | None = None
