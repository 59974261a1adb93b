"""structlog configuration and call tracing."""

import functools
import logging
import sys
import time
from typing import Awaitable, Callable, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(level: str = "info", json_output: bool = False) -> None:
    """Configure structlog for the worker process.

    Args:
        level: Minimum level name (debug, info, warning, error).
        json_output: Emit JSON lines instead of the console renderer.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _LEVELS.get(level.lower(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def traced(name: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Log start, finish and failure of an async callable with its duration."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            start_time = time.time()
            logger.debug("call_started", call=name)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    "call_failed",
                    call=name,
                    error=str(e),
                    time_ms=int((time.time() - start_time) * 1000),
                )
                raise
            logger.debug(
                "call_finished",
                call=name,
                time_ms=int((time.time() - start_time) * 1000),
            )
            return result

        return wrapper

    return decorator
