"""
OSRM HTTP client utilities.

Centralizes ``match`` and ``route`` calls against the configured OSRM
instance. OSRM speaks ``lon,lat`` and encodes the coordinate list in the
URL path, so callers hand this client ``(lon, lat)`` pairs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from config import require_osrm_match_url, require_osrm_route_url
from core.exceptions import ExternalServiceException
from core.http.circuit_breaker import osrm_breaker, with_circuit_breaker
from core.http.request import get_json
from core.http.retry import retry_async
from core.http.session import get_session

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# OSRM reports NoMatch, InvalidQuery and friends with a 400 and a JSON body.
OSRM_RESPONSE_STATUSES = (200, 400)


def format_coordinate_path(coordinates: Sequence[Sequence[float]]) -> str:
    """Render ``(lon, lat)`` pairs as OSRM's ``lon,lat;lon,lat`` path segment."""
    return ";".join(f"{float(lon):.6f},{float(lat):.6f}" for lon, lat in coordinates)


class OsrmClient:
    def __init__(
        self,
        match_url: str | None = None,
        route_url: str | None = None,
    ) -> None:
        self._match_url = match_url or require_osrm_match_url()
        self._route_url = route_url or require_osrm_route_url()

    @property
    def match_url(self) -> str:
        return self._match_url

    @with_circuit_breaker(osrm_breaker)
    async def match(
        self,
        coordinates: Sequence[Sequence[float]],
        *,
        timestamps: Sequence[int] | None = None,
        radius_meters: float | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Issue one ``match`` request and return the decoded body.

        A body whose ``code`` is not ``"Ok"`` is returned as-is; interpreting
        it is the caller's job. Transport failures, unexpected statuses and
        undecodable bodies raise :class:`ExternalServiceException`.
        """
        if len(coordinates) < 2:
            msg = "OSRM match requires at least two coordinates."
            raise ValueError(msg)
        if timestamps is not None and len(timestamps) != len(coordinates):
            msg = "OSRM match timestamps must align with coordinates."
            raise ValueError(msg)

        params: dict[str, str] = {
            "geometries": "geojson",
            "overview": "full",
            "tidy": "true",
            "gaps": "ignore",
        }
        if timestamps is not None:
            params["timestamps"] = ";".join(str(int(ts)) for ts in timestamps)
        if radius_meters is not None:
            radius = f"{float(radius_meters):g}"
            params["radiuses"] = ";".join(radius for _ in coordinates)

        url = f"{self._match_url}/{format_coordinate_path(coordinates)}"
        session = await get_session()
        data = await get_json(
            url,
            session=session,
            params=params,
            expected_status=OSRM_RESPONSE_STATUSES,
            service_name="OSRM match",
            timeout=aiohttp.ClientTimeout(total=timeout) if timeout else None,
        )
        if not isinstance(data, dict):
            msg = "OSRM match error: unexpected response"
            raise ExternalServiceException(msg, {"url": self._match_url})
        return data

    @with_circuit_breaker(osrm_breaker)
    @retry_async(max_retries=2, retry_delay=0.5)
    async def route(
        self,
        coordinates: Sequence[Sequence[float]],
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        if len(coordinates) < 2:
            msg = "OSRM route requires at least two coordinates."
            raise ValueError(msg)

        url = f"{self._route_url}/{format_coordinate_path(coordinates)}"
        session = await get_session()
        data = await get_json(
            url,
            session=session,
            params={"overview": "full", "geometries": "geojson"},
            expected_status=OSRM_RESPONSE_STATUSES,
            service_name="OSRM route",
            timeout=aiohttp.ClientTimeout(total=timeout) if timeout else None,
        )
        if not isinstance(data, dict):
            msg = "OSRM route error: unexpected response"
            raise ExternalServiceException(msg, {"url": self._route_url})
        return self._normalize_route_response(data)

    @staticmethod
    def _normalize_route_response(data: dict[str, Any]) -> dict[str, Any]:
        code = data.get("code")
        routes = data.get("routes")
        if code != "Ok" or not isinstance(routes, list) or not routes:
            msg = f"OSRM route error: {data.get('message') or code or 'no route'}"
            raise ExternalServiceException(msg, {"code": code})
        best = routes[0] if isinstance(routes[0], dict) else {}
        geometry = best.get("geometry")
        if not isinstance(geometry, dict) or not geometry.get("coordinates"):
            geometry = None
        return {
            "distance_meters": best.get("distance"),
            "duration_seconds": best.get("duration"),
            "geometry": geometry,
        }
