"""Error translation for FastAPI endpoints."""

import functools
import logging
from collections.abc import Callable
from typing import NamedTuple

from fastapi import HTTPException, status

from core.exceptions import (
    AuthenticationException,
    AuthorizationException,
    DuplicateResourceException,
    ExternalServiceException,
    ResourceNotFoundException,
    RouteTrackerException,
    StorageException,
    ValidationException,
)


class _Mapping(NamedTuple):
    status_code: int
    log_level: int
    detail_prefix: str = ""


# Checked in order; the first isinstance match wins.
_ERROR_MAP: dict[type[RouteTrackerException], _Mapping] = {
    ValidationException: _Mapping(status.HTTP_400_BAD_REQUEST, logging.WARNING),
    AuthenticationException: _Mapping(status.HTTP_401_UNAUTHORIZED, logging.WARNING),
    AuthorizationException: _Mapping(status.HTTP_403_FORBIDDEN, logging.WARNING),
    ResourceNotFoundException: _Mapping(status.HTTP_404_NOT_FOUND, logging.INFO),
    DuplicateResourceException: _Mapping(status.HTTP_409_CONFLICT, logging.WARNING),
    ExternalServiceException: _Mapping(
        status.HTTP_502_BAD_GATEWAY,
        logging.ERROR,
        "External service error: ",
    ),
    StorageException: _Mapping(status.HTTP_503_SERVICE_UNAVAILABLE, logging.ERROR),
}


def _to_http(
    exc: RouteTrackerException,
    endpoint: str,
    logger: logging.Logger,
) -> HTTPException:
    for exc_type, mapping in _ERROR_MAP.items():
        if isinstance(exc, exc_type):
            logger.log(
                mapping.log_level,
                "%s -> %d in %s: %s",
                type(exc).__name__,
                mapping.status_code,
                endpoint,
                exc.message,
            )
            return HTTPException(
                status_code=mapping.status_code,
                detail=f"{mapping.detail_prefix}{exc.message}",
            )
    logger.exception("Unmapped %s in %s", type(exc).__name__, endpoint)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=exc.message,
    )


def api_route(logger: logging.Logger):
    """
    Wrap an async endpoint so application errors become HTTP responses.

    ``HTTPException`` passes through untouched, :class:`RouteTrackerException`
    subclasses map through ``_ERROR_MAP`` and anything else is logged with
    its traceback and returned as a 500.

    Usage::

        @router.get("/api/routes/{user_id}/dates")
        @api_route(logger)
        async def list_dates(user_id: str):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except RouteTrackerException as e:
                raise _to_http(e, func.__name__, logger) from e
            except Exception as e:
                logger.exception("Unhandled error in %s", func.__name__)
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=str(e),
                ) from e

        return wrapper

    return decorator
