"""Retry helper driven by the ambient retry policy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from jixoflow.context import get_retry_config
from jixoflow.preferences.schema import RetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    error_type: RetryableError = "network_error",
) -> T:
    """Await ``fn()``, retrying with exponential backoff per the current retry policy.

    If ``error_type`` is not listed in the policy's ``retry_on`` the call is
    attempted exactly once. The last error is re-raised when all attempts fail.
    """

    config = get_retry_config()
    if error_type not in config.retry_on:
        return await fn()

    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            attempt += 1
            if attempt >= config.max_attempts:
                raise
            delay = config.delay_seconds(attempt - 1)
            logger.warning(
                "Attempt failed, retrying",
                extra={
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "retry_in_seconds": delay,
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)
