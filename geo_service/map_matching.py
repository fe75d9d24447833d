"""Map matching service for snapping session GPS points to roads via OSRM."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from config import (
    MAP_MATCH_MAX_POINTS,
    MAP_MATCH_RADIUS_METERS,
    MAP_MATCH_TIMEOUT_SECONDS,
)
from core.cache import MatchCache, build_match_cache, make_match_key
from core.exceptions import ExternalServiceException
from core.http.circuit_breaker import CircuitOpen
from core.http.osrm import OsrmClient
from core.spatial import GeometryService
from geo_service.sampling import sample_points
from geo_service.schemas import (
    InsufficientPoints,
    MatchOk,
    MatchOutcome,
    NoMatch,
    ServiceError,
    parse_match_response,
)
from geo_service.timestamp_utils import sanitize_timestamps, timestamps_for_points

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class RoadMatcherService:
    """
    Single-attempt OSRM map matching with typed outcomes.

    Never raises for service trouble: every failure becomes a
    :class:`ServiceError` or :class:`NoMatch` so the caller can fall back.
    """

    def __init__(
        self,
        client: OsrmClient | None = None,
        cache: MatchCache | None = None,
        *,
        max_points: int = MAP_MATCH_MAX_POINTS,
        radius_meters: float = MAP_MATCH_RADIUS_METERS,
        timeout_seconds: float = MAP_MATCH_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client or OsrmClient()
        self._cache = cache if cache is not None else build_match_cache()
        self.max_points = max_points
        self.radius_meters = radius_meters
        self.timeout_seconds = timeout_seconds

    async def match(self, points: Sequence[Any]) -> MatchOutcome:
        valid = [p for p in points if GeometryService.is_valid_coordinate(p)]
        if len(valid) < 2:
            return InsufficientPoints(valid_count=len(valid))

        sampled = sample_points(valid, self.max_points)
        timestamps = [
            int(ts) for ts in sanitize_timestamps(timestamps_for_points(sampled))
        ]
        coordinates: list[tuple[float, float]] = []
        for point in sampled:
            lat, lon = GeometryService.to_lat_lon(point)
            coordinates.append((lon, lat))

        cache_key = None
        if self._cache is not None:
            cache_key = make_match_key(coordinates, timestamps)
            hit = await self._cache.get(cache_key)
            if hit is not None:
                try:
                    return MatchOk.from_dict(hit)
                except (KeyError, TypeError, ValueError):
                    logger.debug("Ignoring malformed match cache entry %s", cache_key)

        try:
            data = await self._client.match(
                coordinates,
                timestamps=timestamps,
                radius_meters=self.radius_meters,
                timeout=self.timeout_seconds,
            )
        except CircuitOpen as exc:
            logger.info("Skipping OSRM match: %s", exc)
            return ServiceError(reason=str(exc))
        except ExternalServiceException as exc:
            logger.warning("OSRM match failed: %s", exc.message)
            return ServiceError(reason=exc.message, status=exc.details.get("status"))
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("OSRM match request error: %s", type(exc).__name__)
            return ServiceError(reason=f"{type(exc).__name__}: {exc}")

        outcome = parse_match_response(data)
        if isinstance(outcome, NoMatch):
            logger.info("OSRM returned no usable matching: %s", outcome.reason)
            return outcome

        logger.debug(
            "Matched %d points (sampled from %d) with confidence %.2f",
            len(sampled),
            len(valid),
            outcome.confidence,
        )
        if self._cache is not None and cache_key is not None:
            await self._cache.set(cache_key, outcome.to_dict())
        return outcome
