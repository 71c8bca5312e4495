from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from agent.errors import error_status


logger = logging.getLogger(__name__)

T = TypeVar("T")

SERVICE_UNAVAILABLE = 503


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True
    if error_status(exc) == SERVICE_UNAVAILABLE:
        return True
    text = str(exc).lower()
    return "timeout" in text or "network" in text


async def retry_with_delay(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
) -> T:
    """Run ``operation`` until it succeeds or retries run out.

    Only transient failures are retried. The wait before attempt ``n + 1``
    is ``base_delay * n`` seconds. Any other failure, and the failure of the
    last attempt, is re-raised as is.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            logger.warning("Attempt %d failed: %s", attempt, exc)
            if attempt == max_attempts or not is_transient_error(exc):
                raise
            wait = base_delay * attempt
            logger.info("Retrying in %.2fs...", wait)
            await asyncio.sleep(wait)

    raise AssertionError("unreachable")
