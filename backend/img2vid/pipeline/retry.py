"""Retry-with-backoff executor for remote calls.

Wraps tenacity so callers can pick the attempt budget, base delay and
retry predicate per call site instead of baking them into a decorator.
The delay before attempt n+1 is ``base_delay * 2**(n-1) + uniform(0, jitter)``.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay: float,
    is_retryable: Callable[[BaseException], bool],
    jitter: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run fn, retrying errors accepted by is_retryable.

    Non-retryable errors and the error of the final attempt are re-raised
    unchanged; classification is left to the caller.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, exp_base=2) + wait_random(0, jitter),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(fn)
