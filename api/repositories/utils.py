"""Timing instrumentation for repository methods."""

import logging
import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from core.wide_event import set_wide_event_fields

logger = logging.getLogger(__name__)

# Operations slower than this are flagged on the request's wide event
SLOW_QUERY_THRESHOLD_MS = 500

P = ParamSpec("P")
R = TypeVar("R")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Flag slow or failing store calls on the wide event.

    A failure adds ``db_error_type`` and is re-raised untouched; a slow call
    adds ``db_slow_query``. Fast successful calls leave no trace.

    Usage:
        @log_slow_query("get_property_by_id")
        async def get_by_id(self, property_id: str) -> Property | None:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                set_wide_event_fields(
                    db_operation=operation_name,
                    db_duration_ms=_elapsed_ms(start),
                    db_error_type=type(e).__name__,
                )
                raise

            duration_ms = _elapsed_ms(start)
            if duration_ms > SLOW_QUERY_THRESHOLD_MS:
                logger.debug(
                    "db.query.slow",
                    extra={"db_operation": operation_name, "duration_ms": duration_ms},
                )
                set_wide_event_fields(
                    db_slow_query=True,
                    db_operation=operation_name,
                    db_duration_ms=duration_ms,
                )
            return result

        return wrapper

    return decorator
