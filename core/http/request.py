"""
JSON GET helper shared by the OSRM client.

Every failure surfaces as :class:`ExternalServiceException` with the status,
URL and (for unexpected statuses) the response body in ``details``, so the
retry policy and circuit breaker can inspect it.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from core.exceptions import ExternalServiceException

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

MAX_ERROR_BODY_CHARS = 500


async def get_json(
    url: str,
    *,
    session: aiohttp.ClientSession,
    params: dict[str, str] | None = None,
    expected_status: Iterable[int] = (200,),
    service_name: str = "Service",
    timeout: aiohttp.ClientTimeout | None = None,
) -> Any:
    """GET ``url`` and decode its JSON body.

    Args:
        url: Fully built request URL.
        session: Shared client session.
        params: Query string parameters.
        expected_status: Statuses whose bodies are decoded and returned.
        service_name: Label used in error messages.
        timeout: Per-request timeout overriding the session default.

    Raises:
        ExternalServiceException: On 429, any other unexpected status, or a
            body that is not valid JSON.
    """
    expected = set(expected_status)
    request_kwargs: dict[str, Any] = {"params": params}
    if timeout is not None:
        request_kwargs["timeout"] = timeout

    async with session.get(url, **request_kwargs) as response:
        status = response.status
        if status == 429:
            msg = f"{service_name} error: 429"
            raise ExternalServiceException(
                msg,
                {
                    "status": 429,
                    "retry_after": response.headers.get("Retry-After"),
                    "url": url,
                },
            )
        if status not in expected:
            body = await response.text()
            logger.debug("%s returned %s for %s", service_name, status, url)
            msg = f"{service_name} error: {status}"
            raise ExternalServiceException(
                msg,
                {"status": status, "body": body[:MAX_ERROR_BODY_CHARS], "url": url},
            )
        try:
            return await response.json(content_type=None)
        except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError) as exc:
            msg = f"{service_name} error: malformed response body"
            raise ExternalServiceException(msg, {"status": status, "url": url}) from exc
