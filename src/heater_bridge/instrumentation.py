"""
Timing for radio and persistence calls.

A radio round-trip that stalls (a wedged transceiver, a long SPI retry) shows
up as a warning with the operation name and duration. Everything under
``HEATER_PERF_THRESHOLD_MS`` is logged at debug.
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from heater_bridge import const
from heater_bridge.logging_abstraction import get_logger

__all__ = [
    "elapsed_ms",
    "report_duration",
    "timed",
]

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def elapsed_ms(started: float) -> float:
    """Milliseconds since ``started``, a ``time.perf_counter()`` reading."""
    return (time.perf_counter() - started) * 1000


def report_duration(operation: str, duration_ms: float, threshold_ms: int | None = None) -> bool:
    """Log how long ``operation`` took. Returns True when it went over the threshold."""
    limit = const.HEATER_PERF_THRESHOLD_MS if threshold_ms is None else threshold_ms
    context = {"operation": operation, "duration_ms": round(duration_ms, 2), "threshold_ms": limit}
    if duration_ms > limit:
        logger.warning("[%s] took %.1fms, over the %dms threshold", operation, duration_ms, limit, extra=context)
        return True
    logger.debug("[%s] took %.1fms", operation, duration_ms, extra=context)
    return False


def timed(operation: str) -> Callable[[F], F]:
    """Report the duration of every call to a function or coroutine function.

    Exceptions (cancellation included) still get their duration reported.
    ``HEATER_PERF_TRACKING=false`` turns the reporting off.

    Example:
        @timed("driver_send_command")
        async def send_command(self, cmd): ...
    """

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                if not const.HEATER_PERF_TRACKING:
                    return await func(*args, **kwargs)
                started = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    _ = report_duration(operation, elapsed_ms(started))

            return cast("F", async_wrapper)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not const.HEATER_PERF_TRACKING:
                return func(*args, **kwargs)
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _ = report_duration(operation, elapsed_ms(started))

        return cast("F", wrapper)

    return decorator
