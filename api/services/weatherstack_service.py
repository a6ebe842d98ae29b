"""Weatherstack client: current conditions and coordinates for an address.

One GET per call, no caching and no retries. Weatherstack reports most
failures as HTTP 200 with an ``error`` object in the body; those become
WeatherProviderError and never count against the circuit breaker. Transport
failures and 5xx responses raise WeatherProviderUnavailableError and trip the
breaker after ``failure_threshold`` consecutive failures.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from circuitbreaker import CircuitBreaker, CircuitBreakerError

from core.config import WEATHERSTACK_BASE_URL

logger = logging.getLogger(__name__)


class WeatherProviderError(Exception):
    """Weatherstack answered with an error descriptor."""

    def __init__(
        self, message: str, *, code: int | None = None, error_type: str | None = None
    ):
        self.code = code
        self.error_type = error_type
        super().__init__(message)


class WeatherProviderUnavailableError(Exception):
    """Weatherstack could not be reached (network, 5xx, or circuit open)."""

    pass


class CoordinateParseError(ValueError):
    """Weatherstack returned a lat/lon that is not a finite number."""

    pass


class WeatherstackServerError(Exception):
    """Raised for 5xx responses so they count as transport failures."""

    pass


TRANSPORT_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.RequestError,
    WeatherstackServerError,
)


@dataclass(frozen=True)
class AddressQuery:
    city: str
    state: str
    zip_code: str


@dataclass(frozen=True)
class WeatherLocation:
    """Location block of a Weatherstack response. lat/lon arrive as strings."""

    name: str
    country: str
    region: str
    lat: str
    lon: str


@dataclass(frozen=True)
class WeatherSnapshot:
    location: WeatherLocation
    current: dict[str, Any]


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


class WeatherProvider(Protocol):
    async def get_current_weather(self, address: AddressQuery) -> WeatherSnapshot: ...

    def extract_coordinates(self, location: WeatherLocation) -> Coordinates: ...


def build_location_query(address: AddressQuery) -> str:
    """Free-text query Weatherstack geocodes, e.g. ``"73301 Austin, TX, USA"``."""
    return f"{address.zip_code} {address.city}, {address.state}, USA"


def _parse_coordinate(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        raise CoordinateParseError(f"Invalid coordinate value: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise CoordinateParseError(f"Invalid coordinate value: {value!r}") from e
    if not math.isfinite(number):
        raise CoordinateParseError(f"Invalid coordinate value: {value!r}")
    return number


def extract_coordinates(location: WeatherLocation) -> Coordinates:
    """Convert the string lat/lon of a location to floats.

    Raises:
        CoordinateParseError: If either value is not a finite number.
    """
    try:
        latitude = _parse_coordinate(location.lat)
        longitude = _parse_coordinate(location.lon)
    except CoordinateParseError:
        logger.warning(
            "weatherstack.coordinates.invalid",
            extra={"lat": location.lat, "lon": location.lon},
        )
        raise CoordinateParseError(
            "Weatherstack returned invalid lat/lon values"
        ) from None
    return Coordinates(latitude=latitude, longitude=longitude)


def _parse_location(raw: Any) -> WeatherLocation:
    if not isinstance(raw, dict):
        raise WeatherProviderError("Weatherstack response is missing location data")
    return WeatherLocation(
        name=str(raw.get("name", "")),
        country=str(raw.get("country", "")),
        region=str(raw.get("region", "")),
        lat=raw.get("lat"),
        lon=raw.get("lon"),
    )


class WeatherstackClient:
    """Weatherstack ``/current`` endpoint over a shared httpx.AsyncClient."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        *,
        base_url: str = WEATHERSTACK_BASE_URL,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._base_url = base_url
        self._breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=TRANSPORT_EXCEPTIONS,
            name="weatherstack_circuit",
        )
        self._request = self._breaker(self._send_request)

    async def _send_request(self, query: str) -> httpx.Response:
        response = await self._http.get(
            self._base_url,
            params={"access_key": self._api_key, "query": query},
        )
        if response.status_code >= 500:
            raise WeatherstackServerError(
                f"Weatherstack returned HTTP {response.status_code}"
            )
        return response

    async def get_current_weather(self, address: AddressQuery) -> WeatherSnapshot:
        """Fetch current conditions for an address.

        Raises:
            WeatherProviderError: Error payload, 4xx, or malformed body.
            WeatherProviderUnavailableError: Transport failure, 5xx, or open circuit.
        """
        query = build_location_query(address)

        try:
            response = await self._request(query)
        except CircuitBreakerError as e:
            logger.warning("weatherstack.circuit_open", extra={"query": query})
            raise WeatherProviderUnavailableError(
                "Weather provider is temporarily unavailable"
            ) from e
        except TRANSPORT_EXCEPTIONS as e:
            logger.warning(
                "weatherstack.request.failed",
                extra={"query": query, "error_type": type(e).__name__},
            )
            raise WeatherProviderUnavailableError(
                "Weather provider could not be reached"
            ) from e

        if response.is_error:
            raise WeatherProviderError(
                f"Weatherstack returned HTTP {response.status_code}",
                code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise WeatherProviderError("Weatherstack returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise WeatherProviderError("Weatherstack returned an unexpected payload")

        error = payload.get("error")
        if error:
            info = error.get("info") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            error_type = error.get("type") if isinstance(error, dict) else None
            logger.warning(
                "weatherstack.error_payload",
                extra={"query": query, "code": code, "error_type": error_type},
            )
            raise WeatherProviderError(
                info or "Weatherstack request failed", code=code, error_type=error_type
            )

        current = payload.get("current")
        if not isinstance(current, dict):
            raise WeatherProviderError("Weatherstack response is missing current data")

        return WeatherSnapshot(
            location=_parse_location(payload.get("location")),
            current=current,
        )

    @property
    def circuit_state(self) -> str:
        return self._breaker.state

    def extract_coordinates(self, location: WeatherLocation) -> Coordinates:
        return extract_coordinates(location)
