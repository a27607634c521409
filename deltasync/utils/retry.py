"""Retry utilities with exponential backoff."""

import asyncio
from functools import wraps
from typing import Any, Awaitable, Callable, Tuple, Type

import structlog

log = structlog.stdlib.get_logger()

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int, base_delay: float, max_delay: float | None = None) -> float:
    """Delay in seconds after failed attempt ``attempt`` (counting from 1)."""
    delay = base_delay * (2**attempt)
    if max_delay is None:
        return delay
    return min(delay, max_delay)


def exponential_backoff_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float | None = None,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    sleep: Sleep = asyncio.sleep,
) -> Callable:
    """
    Decorator that retries a coroutine function with exponential backoff.

    After failed attempt ``n`` the wrapper waits ``base_delay * 2**n`` seconds
    (capped at ``max_delay`` when one is given) before trying again. No wait follows the last
    attempt.

    Args:
        max_attempts: Total number of attempts, including the first one
        base_delay: Backoff base in seconds
        max_delay: Optional maximum delay in seconds; None means uncapped
        exceptions: Tuple of exception types to catch and retry
        sleep: Awaitable sleep used between attempts

    Returns:
        Decorated coroutine function with retry logic
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        name = getattr(func, "__name__", repr(func))

        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        log.error(
                            "max_retries_reached",
                            function=name,
                            max_attempts=max_attempts,
                            error=str(e),
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay)

                    log.warning(
                        "retrying_after_error",
                        function=name,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay_seconds=delay,
                        error=str(e),
                    )

                    await sleep(delay)

        return wrapper

    return decorator
