"""Connection-pooled HTTP client for outbound provider requests.

Created once in the application lifespan, stored on ``app.state`` and closed
on shutdown. Services receive it explicitly instead of reaching for a global.
"""

from __future__ import annotations

import httpx

from core.config import Settings, get_settings


def create_http_client(settings: Settings | None = None) -> httpx.AsyncClient:
    settings = settings or get_settings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout, connect=5.0),
        follow_redirects=False,
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
    )


async def close_http_client(client: httpx.AsyncClient | None) -> None:
    """Close the shared client (called on application shutdown)."""
    if client is not None and not client.is_closed:
        await client.aclose()
