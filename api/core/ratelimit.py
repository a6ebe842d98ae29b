"""Per-client rate limits, enforced with slowapi.

Creating a property costs one Weatherstack request, so POST /api/properties
is limited well below the general default to protect the provider quota.

Counters live in RATELIMIT_STORAGE_URI. ``memory://`` is per-process; use
``redis://host:port/db`` when running more than one worker or replica.
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = "100/minute"
CREATE_PROPERTY_LIMIT = "20/minute"
HEALTH_LIMIT = "30/minute"


def client_key(request: Request) -> str:
    """Rate-limit key: first X-Forwarded-For hop, else the socket address."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or get_remote_address(request)


def _build_limiter(settings: Settings) -> Limiter:
    using_redis = settings.ratelimit_storage_uri.startswith("redis://")
    if settings.environment != "development" and not using_redis:
        logger.warning(
            "ratelimit.memory_storage",
            extra={
                "environment": settings.environment,
                "storage_uri": settings.ratelimit_storage_uri,
            },
        )

    return Limiter(
        key_func=client_key,
        default_limits=[DEFAULT_LIMIT],
        storage_uri=settings.ratelimit_storage_uri,
        # Keep limiting (per process) if Redis drops out
        in_memory_fallback_enabled=using_redis,
        key_prefix="props:",
    )


limiter = _build_limiter(get_settings())


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    logger.warning(
        "ratelimit.exceeded",
        extra={
            "client": client_key(request),
            "path": request.url.path,
            "limit": exc.detail,
        },
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "code": "RATE_LIMITED",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )
