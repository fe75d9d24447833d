"""Retry utilities for async HTTP operations.

Only idempotent lookups (OSRM ``route``) are retried. Map matching is
deliberately single-shot so an interactive route view stays bounded.
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import (
    ClientConnectorError,
    ClientPayloadError,
    ServerDisconnectedError,
)
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from core.exceptions import ExternalServiceException

logger = logging.getLogger(__name__)

TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ClientConnectorError,
    ClientPayloadError,
    ServerDisconnectedError,
    asyncio.TimeoutError,
)


def is_transient_error(exc: BaseException) -> bool:
    """Connection drops, timeouts, 429 and 5xx replies are worth another try."""
    if isinstance(exc, TRANSIENT_EXCEPTIONS):
        return True
    if isinstance(exc, ExternalServiceException):
        status = exc.details.get("status")
        return isinstance(status, int) and (status == 429 or status >= 500)
    return False


def retry_async(
    max_retries: int = 3,
    retry_delay: float = 1.0,
    backoff_factor: float = 2.0,
):
    """Factory that returns a tenacity retry decorator.

    Args:
        max_retries: Retry attempts in addition to the first attempt.
        retry_delay: Initial delay between retries in seconds.
        backoff_factor: Exponential backoff base.

    Example:
        @retry_async(max_retries=2, retry_delay=0.5)
        async def fetch_route():
            ...
    """
    return retry(
        # stop_after_attempt counts the first attempt too
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=retry_delay, exp_base=backoff_factor),
        retry=retry_if_exception(is_transient_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
