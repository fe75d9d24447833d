import asyncio

import pytest
from aiohttp import ServerDisconnectedError

from core.exceptions import ExternalServiceException
from core.http.retry import is_transient_error, retry_async


@pytest.mark.asyncio
async def test_retry_async_survives_dropped_connections() -> None:
    failures = [ServerDisconnectedError(), asyncio.TimeoutError()]

    @retry_async(max_retries=2, retry_delay=0)
    async def fetch_route():
        if failures:
            raise failures.pop(0)
        return {"code": "Ok"}

    assert await fetch_route() == {"code": "Ok"}
    assert failures == []


@pytest.mark.asyncio
async def test_retry_async_gives_up_with_last_error() -> None:
    calls = []

    @retry_async(max_retries=1, retry_delay=0)
    async def fetch_route():
        calls.append(len(calls))
        raise asyncio.TimeoutError()

    with pytest.raises(asyncio.TimeoutError):
        await fetch_route()

    assert calls == [0, 1]


@pytest.mark.asyncio
async def test_retry_async_retries_server_errors() -> None:
    attempts = 0

    @retry_async(max_retries=2, retry_delay=0)
    async def overloaded():
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise ExternalServiceException("OSRM route error: 503", {"status": 503})
        return "ok"

    assert await overloaded() == "ok"
    assert attempts == 2


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_client_errors() -> None:
    attempts = 0

    @retry_async(max_retries=3, retry_delay=0)
    async def rejected():
        nonlocal attempts
        attempts += 1
        raise ExternalServiceException("OSRM route error: 400", {"status": 400})

    with pytest.raises(ExternalServiceException):
        await rejected()

    assert attempts == 1


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (asyncio.TimeoutError(), True),
        (ExternalServiceException("rate limited", {"status": 429}), True),
        (ExternalServiceException("server", {"status": 500}), True),
        (ExternalServiceException("no route", {"code": "NoRoute"}), False),
        (ValueError("bad"), False),
    ],
)
def test_is_transient_error(exc: BaseException, expected: bool) -> None:
    assert is_transient_error(exc) is expected
