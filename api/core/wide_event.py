"""Request-scoped context for the canonical ``request.completed`` log line.

RequestTimingMiddleware creates the dict when a request starts and emits it
when the response finishes. Anything deeper in the stack (services,
repositories) may add fields to it:

    from core.wide_event import set_wide_event_fields

    set_wide_event_fields(property_id=prop.id, weather_provider="weatherstack")
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    """Start a fresh wide event for the current async context."""
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Current wide event, or an empty dict outside a request."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_fields(**kwargs: Any) -> None:
    """Merge fields into the current wide event.

    No-op outside a request (CLI, tests without middleware).
    """
    try:
        event = _wide_event.get()
    except LookupError:
        return
    event.update(kwargs)


def clear_wide_event() -> None:
    _wide_event.set({})
