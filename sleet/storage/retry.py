"""
Retry policy for transient feed I/O.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (OSError, httpx.TransportError, httpx.HTTPStatusError)


class RetryPolicy:
    """
    Fixed-delay retry loop.

    Only transient errors are retried. After the last attempt the error is
    raised to the caller.
    """

    def __init__(self, max_attempts: int = 5, delay: float = 5.0, retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay = delay
        self.retry_on = retry_on

    async def run(self, action: Callable[[], Awaitable[T]], description: str) -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await action()
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    logger.error(f"{description} failed after {attempt} attempts: {e}")
                    raise
                logger.warning(f"{description} failed (attempt {attempt}/{self.max_attempts}): {e}. Retrying...")
                if self.delay > 0:
                    await asyncio.sleep(self.delay)
        raise RuntimeError("unreachable")

    @classmethod
    def no_delay(cls, max_attempts: int = 5) -> "RetryPolicy":
        return cls(max_attempts=max_attempts, delay=0)


# Reads are cheaper to repeat than uploads.
DEFAULT_FETCH_POLICY = RetryPolicy(max_attempts=5, delay=5.0)
DEFAULT_PUSH_POLICY = RetryPolicy(max_attempts=5, delay=10.0)
