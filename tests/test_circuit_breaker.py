import asyncio

import pytest

from core.exceptions import ExternalServiceException
from core.http.circuit_breaker import CircuitBreaker, CircuitOpen, with_circuit_breaker


def test_opens_after_threshold_consecutive_failures() -> None:
    breaker = CircuitBreaker("test", failure_threshold=3, recovery_timeout=60)

    for _ in range(2):
        breaker.record_failure()
        breaker.check()

    breaker.record_failure()

    assert breaker.state == "open"
    with pytest.raises(CircuitOpen) as raised:
        breaker.check()
    assert raised.value.service == "test"
    assert 0 < raised.value.resets_in <= 60


def test_success_resets_failure_count() -> None:
    breaker = CircuitBreaker("test", failure_threshold=3)

    breaker.record_failure()
    breaker.record_failure()
    breaker.record_success()
    breaker.record_failure()

    assert breaker.state == "closed"
    assert breaker.failures == 1


def test_half_open_probe_failure_reopens() -> None:
    breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=0)

    breaker.record_failure()
    assert breaker.state == "half-open"
    breaker.check()

    breaker.record_failure()
    # recovery_timeout is zero, so the reopened circuit is probe-able again.
    assert breaker.state == "half-open"
    assert breaker.failures == 2


def test_half_open_probe_success_closes() -> None:
    breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=0)

    breaker.record_failure()
    assert breaker.state == "half-open"
    breaker.record_success()

    assert breaker.state == "closed"
    assert breaker.failures == 0


@pytest.mark.asyncio
async def test_decorator_counts_only_service_failures() -> None:
    breaker = CircuitBreaker("test", failure_threshold=2, recovery_timeout=60)
    calls = 0

    @with_circuit_breaker(breaker)
    async def call(exc: BaseException | None):
        nonlocal calls
        calls += 1
        if exc is not None:
            raise exc
        return "ok"

    with pytest.raises(ValueError):
        await call(ValueError("bad input"))
    assert breaker.failures == 0

    with pytest.raises(ExternalServiceException):
        await call(ExternalServiceException("down", {"status": 503}))
    with pytest.raises(asyncio.TimeoutError):
        await call(asyncio.TimeoutError())
    assert breaker.state == "open"

    with pytest.raises(CircuitOpen):
        await call(None)
    assert calls == 3


@pytest.mark.asyncio
async def test_decorator_records_success() -> None:
    breaker = CircuitBreaker("test", failure_threshold=2)

    @with_circuit_breaker(breaker)
    async def call():
        return 42

    breaker.record_failure()
    assert await call() == 42
    assert breaker.failures == 0


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_half_open_admits_a_single_concurrent_call() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=30, clock=clock)
    breaker.record_failure()
    clock.now += 31
    release = asyncio.Event()
    admitted: list[int] = []

    @with_circuit_breaker(breaker)
    async def call(index: int):
        admitted.append(index)
        await release.wait()
        return index

    tasks = [asyncio.create_task(call(i)) for i in range(5)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert admitted == [0]
    assert results[0] == 0
    assert all(isinstance(result, CircuitOpen) for result in results[1:])
    assert breaker.state == "closed"


@pytest.mark.asyncio
async def test_failed_half_open_call_reopens_for_full_timeout() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=30, clock=clock)
    breaker.record_failure()
    clock.now += 31

    @with_circuit_breaker(breaker)
    async def call():
        raise ExternalServiceException("OSRM match error: 503", {"status": 503})

    with pytest.raises(ExternalServiceException):
        await call()

    assert breaker.state == "open"
    with pytest.raises(CircuitOpen) as raised:
        breaker.check()
    assert raised.value.resets_in == 30


@pytest.mark.asyncio
async def test_half_open_slot_freed_by_non_service_error() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=30, clock=clock)
    breaker.record_failure()
    clock.now += 31

    @with_circuit_breaker(breaker)
    async def call(fail: bool):
        if fail:
            raise ValueError("bad coordinates")
        return "ok"

    with pytest.raises(ValueError):
        await call(True)

    assert breaker.state == "half-open"
    assert await call(False) == "ok"
    assert breaker.state == "closed"
