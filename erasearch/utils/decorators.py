"""
Execution decorators shared across the engine.

``time_execution`` wraps sync and async callables alike and logs the wall-clock
duration through structlog. It works bare (``@time_execution``) or with
parameters (``@time_execution(level="debug")``).
"""

import inspect
import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from erasearch.core.logging import correlation_context, get_logger

F = TypeVar("F", bound=Callable[..., Any])


def _timed(level: str = "info") -> Callable[[F], F]:
    def decorator(func: F) -> F:
        logger = get_logger(func.__module__)
        log = getattr(logger, level)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    log(
                        "Function execution completed",
                        function_name=func.__qualname__,
                        execution_time_ms=round((time.perf_counter() - start_time) * 1000, 3),
                        correlation_id=correlation_context.get_correlation_id(),
                    )

            return cast(F, async_wrapper)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                log(
                    "Function execution completed",
                    function_name=func.__qualname__,
                    execution_time_ms=round((time.perf_counter() - start_time) * 1000, 3),
                    correlation_id=correlation_context.get_correlation_id(),
                )

        return cast(F, wrapper)

    return decorator


def _make_hybrid_decorator(
    base_decorator: Callable[..., Callable[[F], F]],
    default_kwargs: dict | None = None,
) -> Callable[..., Any]:
    """Create a hybrid decorator that works with or without parameters."""
    default_kwargs = default_kwargs or {}

    def hybrid(func: F | None = None, **kwargs: Any) -> F | Callable[[F], F]:
        if callable(func):
            # Used as bare decorator: @decorator
            return base_decorator(**default_kwargs)(func)
        return base_decorator(**{**default_kwargs, **kwargs})

    return hybrid


time_execution = _make_hybrid_decorator(_timed, {"level": "info"})


__all__ = ["time_execution"]
