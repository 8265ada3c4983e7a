"""
Fixed-delay retry for upstream API calls.

Every attempt waits the same delay before the next one; there is no
backoff growth, no jitter and no budget shared between callers.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from whalewatch.transactions.config import RetryConfig

logger = structlog.get_logger()

T = TypeVar("T")


async def retry_with_delay(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    operation_name: str = "operation",
    attempts: Optional[int] = None,
) -> T:
    """
    Execute an async function, retrying on any exception.

    Args:
        func: Async function to execute
        config: Retry configuration
        operation_name: Name for logging
        attempts: Total attempts, overriding config.max_attempts

    Returns:
        Function result

    Raises:
        Exception: Last exception if all attempts are exhausted
    """
    max_attempts = attempts if attempts is not None else config.max_attempts
    if max_attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except Exception as e:
            if attempt >= max_attempts:
                logger.error(
                    "retry_exhausted",
                    operation=operation_name,
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            logger.warning(
                "retry_attempt",
                operation=operation_name,
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=config.delay,
                error=str(e),
            )
            await asyncio.sleep(config.delay)

    raise RuntimeError("Retry loop exited without result")
