"""Bounded retry with linear backoff for record-store operations.

    @with_retry()
    async def get(self, ...):
        ...

Attempt ``n`` that fails with a transient backend error sleeps
``n * base_delay`` seconds before attempt ``n + 1``.  After the last
attempt the final error is re-raised unmodified.  Anything that is not a
transient error (validation, illegal transition, integrity) propagates
on the first attempt.
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from onboarding.config import settings
from onboarding.middleware.exceptions import TRANSIENT_STORE_ERRORS

logger = logging.getLogger("onboarding.retry")

T = TypeVar("T")


async def retry_call(
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int | None = None,
    base_delay: float | None = None,
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_STORE_ERRORS,
    label: str = "store operation",
) -> T:
    """Await ``func()`` up to ``attempts`` times on transient failures."""
    attempts = attempts if attempts is not None else settings.store_max_attempts
    base_delay = base_delay if base_delay is not None else settings.store_retry_base_delay
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except retry_on as exc:
            if attempt >= attempts:
                logger.error(
                    "%s failed after %d attempts: %s", label, attempts, exc
                )
                raise
            delay = attempt * base_delay
            logger.warning(
                "%s failed, attempt %d/%d, retrying in %.2fs: %s",
                label, attempt, attempts, delay, exc,
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover


def with_retry(
    attempts: int | None = None,
    base_delay: float | None = None,
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_STORE_ERRORS,
):
    """Decorator form of :func:`retry_call` for async methods.

    Limits are read at call time so settings overrides (tests) apply.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await retry_call(
                lambda: func(*args, **kwargs),
                attempts=attempts,
                base_delay=base_delay,
                retry_on=retry_on,
                label=func.__qualname__,
            )

        return wrapper

    return decorator
