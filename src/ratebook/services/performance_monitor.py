"""Performance monitoring decorator for rating calculations."""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from beartype import beartype

from ..core.config import get_settings

P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger(__name__)


@beartype
def performance_monitor(
    operation_name: str,
    max_duration_ms: int | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator that logs slow or failing synchronous rating operations.

    Args:
        operation_name: Name of the operation for monitoring
        max_duration_ms: Warning threshold in milliseconds; defaults to
            ``Settings.slow_calculation_ms``
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            threshold = max_duration_ms or get_settings().slow_calculation_ms
            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.warning(
                    "%s failed after %.2fms: %s", operation_name, duration_ms, e
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms > threshold:
                logger.warning(
                    "%s took %.2fms (threshold: %dms)",
                    operation_name,
                    duration_ms,
                    threshold,
                )
            else:
                logger.debug("%s took %.2fms", operation_name, duration_ms)
            return result

        return wrapper

    return decorator
