"""Database operations module.

Retry-wrapped persistence for route documents. Transient MongoDB errors
(reconnects, network timeouts) are retried with backoff; anything still
failing surfaces as :class:`StorageException` so the client re-syncs later.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo.errors import AutoReconnect, NetworkTimeout, PyMongoError
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.exceptions import StorageException
from db.models import RouteDocument

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TRANSIENT_MONGO_ERRORS = (AutoReconnect, NetworkTimeout)


async def run_with_retry(
    operation: Callable[[], Awaitable[Any]],
    *,
    description: str,
    max_attempts: int = 3,
    retry_delay: float = 0.5,
) -> Any:
    """Run ``operation`` retrying transient MongoDB errors."""
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=retry_delay, max=5),
            retry=retry_if_exception_type(TRANSIENT_MONGO_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await operation()
    except (PyMongoError, RetryError) as exc:
        logger.exception("Storage operation failed: %s", description)
        msg = f"Storage unavailable while trying to {description}"
        raise StorageException(msg, {"error": type(exc).__name__}) from exc
    return None


async def find_route_document(user: str) -> RouteDocument | None:
    return await run_with_retry(
        lambda: RouteDocument.find_one(RouteDocument.user == user),
        description=f"load routes for {user}",
    )


async def save_route_document(document: RouteDocument) -> RouteDocument:
    """Replace the whole per-user document (last write wins)."""
    return await run_with_retry(
        document.save,
        description=f"save routes for {document.user}",
    )
