"""Liveness, readiness and detailed health endpoints."""

from fastapi import APIRouter, HTTPException, Request
from starlette import status

from core.database import check_db_connection, comprehensive_health_check
from core.ratelimit import HEALTH_LIMIT, limiter
from schemas import DetailedHealthResponse, HealthResponse, PoolStatusResponse

SERVICE_NAME = "property-weather-api"

router = APIRouter(tags=["health"])


def _unavailable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness: the process is up. Touches nothing else."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get("/health/detailed", response_model=DetailedHealthResponse)
@limiter.limit(HEALTH_LIMIT)
async def health_detailed(request: Request) -> DetailedHealthResponse:
    """Database reachability, pool counters and the Weatherstack circuit state.

    Always 200. ``status`` is "unhealthy" when the database is down and
    "degraded" when only the weather provider circuit is open.
    """
    result = await comprehensive_health_check(request.app.state.engine)
    weather_circuit = getattr(
        request.app.state.weatherstack_client, "circuit_state", None
    )

    if not result["database"]:
        overall = "unhealthy"
    elif weather_circuit == "open":
        overall = "degraded"
    else:
        overall = "healthy"

    pool = result["pool"]
    return DetailedHealthResponse(
        status=overall,
        service=SERVICE_NAME,
        database=result["database"],
        pool=PoolStatusResponse(**pool._asdict()) if pool is not None else None,
        weather_circuit=weather_circuit,
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={
        503: {
            "description": "Startup not finished, startup failed, or DB unreachable",
            "content": {
                "application/json": {"example": {"detail": "Database unavailable"}}
            },
        }
    },
)
@limiter.limit(HEALTH_LIMIT)
async def ready(request: Request) -> HealthResponse:
    """Readiness: startup completed and the database answers."""
    init_error = getattr(request.app.state, "init_error", None)
    if init_error:
        raise _unavailable(f"Initialization failed: {init_error}")

    if not getattr(request.app.state, "init_done", False):
        raise _unavailable("Starting")

    try:
        await check_db_connection(request.app.state.engine)
    except Exception as e:
        raise _unavailable("Database unavailable") from e

    return HealthResponse(status="ready", service=SERVICE_NAME)
