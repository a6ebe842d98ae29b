"""Request timing and the canonical ``request.completed`` log line.

Every HTTP request gets an id and a wide event (see core.wide_event). When the
response body finishes, the event is logged if the request failed, was slow,
or picked up business fields along the way (a created or deleted property id,
a provider error code). Fast, uneventful reads stay silent.
"""

import os
import time
import uuid
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

SERVICE_NAME = os.getenv("SERVICE_NAME", "property-weather-api")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "0.1.0")

SLOW_REQUEST_THRESHOLD_MS = 1000

REQUEST_ID_HEADER = b"x-request-id"
DURATION_HEADER = b"x-request-duration-ms"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _route_template(scope: Scope) -> str:
    """``/api/properties/{property_id}`` rather than the concrete path."""
    route = scope.get("route")
    return getattr(route, "path", None) or scope.get("path", "")


def _emit(event: dict[str, Any]) -> None:
    logger.info("request.completed", **event)
    clear_wide_event()


class RequestTimingMiddleware:
    """Pure ASGI middleware: response headers plus one wide event per request."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        request_id = str(uuid.uuid4())
        client = scope.get("client")

        base_fields = {
            "service_name": SERVICE_NAME,
            "service_version": SERVICE_VERSION,
            "request_id": request_id,
            "http_method": scope.get("method", "UNKNOWN"),
            "http_path": scope.get("path", ""),
            "http_client_ip": client[0] if client else "unknown",
        }
        init_wide_event().update(base_fields)

        status_code: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code

            if message["type"] == "http.response.start":
                status_code = int(message.get("status", 0))
                message["headers"] = [
                    *message.get("headers", []),
                    (DURATION_HEADER, f"{_elapsed_ms(start):.2f}".encode()),
                    (REQUEST_ID_HEADER, request_id.encode()),
                ]
            elif message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = _elapsed_ms(start)
                event = get_wide_event()
                has_business_fields = any(key not in base_fields for key in event)
                failed = status_code is None or status_code >= 400

                event.update(
                    http_route=_route_template(scope),
                    http_status_code=status_code,
                    duration_ms=round(duration_ms, 2),
                    outcome="error" if failed else "success",
                )
                if (
                    failed
                    or has_business_fields
                    or duration_ms > SLOW_REQUEST_THRESHOLD_MS
                ):
                    _emit(event)
                else:
                    clear_wide_event()

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            event = get_wide_event()
            event.update(
                http_route=_route_template(scope),
                duration_ms=round(_elapsed_ms(start), 2),
                outcome="exception",
                exception_type=type(exc).__name__,
            )
            _emit(event)
            raise
