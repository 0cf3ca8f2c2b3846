# learnsched/core/retry.py
"""
Retry harness for periodic units of work.

Backoff is linear: the wait after attempt ``n`` is ``n * base_delay``.
Only the final attempt's exception reaches the caller; earlier ones are
logged and discarded.
"""

import asyncio
from functools import wraps
import logging
from typing import Awaitable, Callable, Optional, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Return the wait after the given (1-indexed) failed attempt."""
    return attempt * base_delay


async def run_with_retry(
    work: Callable[[], Awaitable[R]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    *,
    op_name: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> R:
    """
    Await ``work`` until it succeeds or ``max_attempts`` is exhausted.

    Args:
        work: Zero-argument coroutine factory; called once per attempt
        max_attempts: Total attempts including the first one
        base_delay: Backoff unit in seconds
        op_name: Name used in log records (defaults to the callable's name)
        sleep: Awaitable sleep, injectable for tests

    Returns:
        Whatever the successful attempt returned

    Raises:
        ValueError: If max_attempts is below 1
        Exception: The last attempt's exception once attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    name = op_name or getattr(work, "__name__", "unit_of_work")
    attempt = 1
    while True:
        try:
            return await work()
        except Exception as exc:
            if attempt >= max_attempts:
                logger.error(
                    "All %s attempts failed for %s: %s",
                    max_attempts,
                    name,
                    exc,
                    extra={"event": "retry_exhausted", "op": name, "attempts": attempt},
                )
                raise

            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "Attempt %s/%s failed for %s: %s. Retrying in %ss...",
                attempt,
                max_attempts,
                name,
                exc,
                extra={
                    "event": "retry_scheduled",
                    "op": name,
                    "attempt": attempt,
                    "delay": delay,
                    "error_type": type(exc).__name__,
                },
            )
            await sleep(delay)
            attempt += 1


def retry(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator form of ``run_with_retry`` for coroutine functions."""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return await run_with_retry(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                base_delay=base_delay,
                op_name=func.__name__,
            )

        return wrapper

    return decorator
