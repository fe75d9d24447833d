"""
Circuit breaker guarding calls to the OSRM service.

The public OSRM instance is rate limited and best effort. After
``failure_threshold`` consecutive service failures the circuit opens and
calls fail fast with :class:`CircuitOpen`, so route views go straight to
their fallback. Once ``recovery_timeout`` has elapsed one probe call is let
through; its result closes or re-opens the circuit.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from enum import StrEnum
from typing import TYPE_CHECKING

from aiohttp import ClientError

from core.exceptions import ExternalServiceException

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# Bad input and programming errors propagate without counting.
TRIPPING_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ExternalServiceException,
    ClientError,
    asyncio.TimeoutError,
    OSError,
)


class CircuitState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitOpen(Exception):
    """A call was rejected without reaching the service."""

    def __init__(self, service: str, resets_in: float) -> None:
        super().__init__(f"{service} circuit open, retry in {resets_in:.0f}s")
        self.service = service
        self.resets_in = resets_in


class CircuitBreaker:
    def __init__(
        self,
        service: str,
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.service = service
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        self._failures = 0
        self._opened_at: float | None = None
        self._probing = False

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def state(self) -> CircuitState:
        if self._opened_at is None:
            return CircuitState.CLOSED
        if self._clock() - self._opened_at >= self.recovery_timeout:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("%s circuit closed", self.service)
        self.reset()

    def release_probe(self) -> None:
        """Free the half-open slot after a probe that proved nothing."""
        self._probing = False

    def record_failure(self) -> None:
        self._failures += 1
        self._probing = False
        state = self.state
        if state is CircuitState.HALF_OPEN:
            self._opened_at = self._clock()
            logger.warning("%s circuit re-opened after failed probe", self.service)
        elif state is CircuitState.CLOSED and self._failures >= self.failure_threshold:
            self._opened_at = self._clock()
            logger.warning(
                "%s circuit opened after %d consecutive failures",
                self.service,
                self._failures,
            )

    def check(self) -> None:
        """Raise :class:`CircuitOpen` unless a call may proceed.

        In half-open state only the first caller gets through; the rest are
        rejected until that probe is recorded.
        """
        state = self.state
        if state is CircuitState.CLOSED:
            return
        if state is CircuitState.HALF_OPEN and not self._probing:
            self._probing = True
            return
        elapsed = self._clock() - (self._opened_at or 0.0)
        raise CircuitOpen(self.service, max(0.0, self.recovery_timeout - elapsed))


osrm_breaker = CircuitBreaker("OSRM", failure_threshold=5, recovery_timeout=60)


def with_circuit_breaker(breaker: CircuitBreaker):
    """Guard an async callable with ``breaker``."""

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            breaker.check()
            try:
                result = await fn(*args, **kwargs)
            except TRIPPING_EXCEPTIONS:
                breaker.record_failure()
                raise
            except BaseException:
                breaker.release_probe()
                raise
            breaker.record_success()
            return result

        return wrapper

    return decorator
