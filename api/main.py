"""FastAPI application for the Property Weather API."""

import asyncio
import logging
from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from core.config import get_settings
from core.database import (
    create_engine,
    create_session_maker,
    create_tables,
    dispose_engine,
    init_db,
)
from core.http_client import close_http_client, create_http_client
from core.logger import configure_logging
from core.ratelimit import limiter, rate_limit_exceeded_handler
from core.telemetry import RequestTimingMiddleware
from core.wide_event import set_wide_event_fields
from routes import health_router, properties_router
from services.properties_service import (
    PropertyAlreadyExistsError,
    PropertyNotFoundError,
)
from services.weatherstack_service import (
    CoordinateParseError,
    WeatherProviderError,
    WeatherProviderUnavailableError,
    WeatherstackClient,
)

configure_logging()
logger = logging.getLogger(__name__)


# Domain exception -> (HTTP status, stable error code)
DOMAIN_ERRORS: dict[type[Exception], tuple[int, str]] = {
    PropertyNotFoundError: (404, "NOT_FOUND"),
    PropertyAlreadyExistsError: (409, "ALREADY_EXISTS"),
    WeatherProviderError: (502, "PROVIDER_ERROR"),
    CoordinateParseError: (502, "INVALID_COORDINATES"),
    WeatherProviderUnavailableError: (503, "PROVIDER_UNAVAILABLE"),
}


def domain_error_handler(status_code: int, code: str):
    """Build a handler rendering ``{"detail": str(exc), "code": code}``."""

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.warning(
                "request.upstream_failure",
                extra={
                    "path": request.url.path,
                    "code": code,
                    "exc_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
        set_wide_event_fields(error_code=code)
        return JSONResponse(
            status_code=status_code, content={"detail": str(exc), "code": code}
        )

    return handler


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handler for request validation errors."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    logger.warning(
        "request.validation_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(exc.errors()),
        },
    )
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create DB engine and provider client at startup, dispose on shutdown."""
    settings = get_settings()

    app.state.engine = create_engine(settings)
    app.state.session_maker = create_session_maker(app.state.engine)
    app.state.http_client = create_http_client(settings)
    app.state.weatherstack_client = WeatherstackClient(
        app.state.http_client,
        settings.weatherstack_api_key,
        base_url=settings.weatherstack_base_url,
        failure_threshold=settings.weatherstack_circuit_failure_threshold,
        recovery_timeout=settings.weatherstack_circuit_recovery_timeout,
    )

    app.state.init_done = False
    app.state.init_error = None

    try:
        async with asyncio.timeout(60):
            await init_db(app.state.engine)
            if settings.create_tables_on_startup:
                await create_tables(app.state.engine)

        app.state.init_done = True
        logger.info("init.complete")
    except TimeoutError:
        logger.error(
            "init.timeout",
            extra={"hint": "Startup hung - check DB connectivity"},
        )
        await close_http_client(app.state.http_client)
        await dispose_engine(app.state.engine)
        raise RuntimeError("Application startup timed out")
    except Exception as e:
        app.state.init_error = str(e)
        logger.error("init.failed", extra={"error": str(e)}, exc_info=True)
        await close_http_client(app.state.http_client)
        await dispose_engine(app.state.engine)
        raise

    try:
        yield
    finally:
        await close_http_client(app.state.http_client)
        await dispose_engine(app.state.engine)


def create_app() -> fastapi.FastAPI:
    settings = get_settings()
    show_docs = settings.enable_docs or settings.debug

    app = fastapi.FastAPI(
        title="Property Weather API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    for exc_class, (status_code, code) in DOMAIN_ERRORS.items():
        app.add_exception_handler(exc_class, domain_error_handler(status_code, code))
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(health_router)
    app.include_router(properties_router)

    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
            expose_headers=["x-request-id"],
        )
    app.add_middleware(RequestTimingMiddleware)

    return app


app = create_app()
