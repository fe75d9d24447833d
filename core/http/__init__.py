"""HTTP client utilities and session management."""

from core.http.circuit_breaker import (
    CircuitBreaker,
    CircuitOpen,
    osrm_breaker,
    with_circuit_breaker,
)
from core.http.osrm import OsrmClient
from core.http.request import get_json
from core.http.retry import retry_async
from core.http.session import cleanup_session, get_session

__all__ = [
    "CircuitBreaker",
    "CircuitOpen",
    "OsrmClient",
    "cleanup_session",
    "get_json",
    "get_session",
    "osrm_breaker",
    "retry_async",
    "with_circuit_breaker",
]
