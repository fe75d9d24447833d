"""Turn a session's raw GPS points into a display-ready route.

States per request:

* ``raw``: fewer than two points; shown as-is with no external call.
* ``matched``: OSRM produced a matching; its geometry is the route.
* ``fallback``: matching failed for any reason; the validated original
  points are the route and distance is their haversine sum.
  ``fallbackReason`` says why: ``insufficient_points`` when fewer than two
  points are valid, otherwise ``no_match``, ``service_error`` or ``timeout``.

A route view therefore always renders something once a point exists.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from config import RECONSTRUCTION_TIMEOUT_SECONDS
from core.constants import (
    FALLBACK_CONFIDENCE,
    MEDIUM_CONFIDENCE_THRESHOLD,
    STRONG_CONFIDENCE_THRESHOLD,
)
from core.exceptions import ExternalServiceException, ValidationException
from core.http.circuit_breaker import CircuitOpen
from core.http.osrm import OsrmClient
from core.spatial import GeometryService
from geo_service.map_matching import RoadMatcherService
from geo_service.schemas import InsufficientPoints, MatchOk, NoMatch
from sessions.models import FallbackReason, ReconstructedRoute

if TYPE_CHECKING:
    from collections.abc import Sequence

    from db.models import Session

logger = logging.getLogger(__name__)


def parse_coordinate_string(coords: str) -> list[tuple[float, float]]:
    """Parse ``lon,lat;lon,lat`` into ``(lon, lat)`` pairs."""
    if not coords or not coords.strip():
        msg = "coords required"
        raise ValidationException(msg)

    pairs: list[tuple[float, float]] = []
    for chunk in coords.strip().strip(";").split(";"):
        parts = chunk.split(",")
        if len(parts) != 2:
            msg = f"Malformed coordinate '{chunk}', expected lon,lat"
            raise ValidationException(msg)
        try:
            lon, lat = float(parts[0]), float(parts[1])
        except ValueError as exc:
            msg = f"Malformed coordinate '{chunk}', expected lon,lat"
            raise ValidationException(msg) from exc
        if not GeometryService.is_valid_coordinate((lat, lon)):
            msg = f"Coordinate out of range: '{chunk}'"
            raise ValidationException(msg)
        pairs.append((lon, lat))

    if len(pairs) < 2:
        msg = "At least two coordinates are required"
        raise ValidationException(msg)
    return pairs


class RouteReconstructionService:
    def __init__(
        self,
        matcher: RoadMatcherService | None = None,
        client: OsrmClient | None = None,
        *,
        timeout_seconds: float = RECONSTRUCTION_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client or OsrmClient()
        self._matcher = matcher or RoadMatcherService(client=self._client)
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def classify_confidence(confidence: float) -> str:
        """Display hint: strong (>= 0.8), medium (>= 0.5) or weak."""
        if confidence >= STRONG_CONFIDENCE_THRESHOLD:
            return "strong"
        if confidence >= MEDIUM_CONFIDENCE_THRESHOLD:
            return "medium"
        return "weak"

    @classmethod
    def _route(
        cls,
        polyline: list[tuple[float, float]],
        distance: float,
        confidence: float,
        *,
        state: str,
        reason: FallbackReason | None = None,
    ) -> ReconstructedRoute:
        return ReconstructedRoute(
            polyline=polyline,
            distanceMeters=distance,
            confidence=confidence,
            confidenceLevel=cls.classify_confidence(confidence),
            usedFallback=state == "fallback",
            state=state,
            fallbackReason=reason,
        )

    @staticmethod
    def _fallback_reason(outcome: object) -> FallbackReason:
        if isinstance(outcome, InsufficientPoints):
            return "insufficient_points"
        if isinstance(outcome, NoMatch):
            return "no_match"
        return "service_error"

    async def reconstruct(self, locations: Sequence[Any]) -> ReconstructedRoute:
        if len(locations) < 2:
            polyline = [
                pair
                for pair in (GeometryService.to_lat_lon(p) for p in locations)
                if pair is not None
            ]
            # Unmatched, so shown with the same weak confidence as a fallback.
            return self._route(polyline, 0.0, FALLBACK_CONFIDENCE, state="raw")

        reason: FallbackReason | None = None
        try:
            outcome = await asyncio.wait_for(
                self._matcher.match(locations),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "Map matching timed out after %.1fs; using fallback route",
                self.timeout_seconds,
            )
            outcome, reason = None, "timeout"
        except Exception:
            logger.warning("Map matching raised; using fallback route", exc_info=True)
            outcome, reason = None, "service_error"

        if isinstance(outcome, MatchOk):
            distance = outcome.distance_meters
            if distance is None:
                distance = GeometryService.path_length_meters(outcome.polyline)
            return self._route(
                list(outcome.polyline),
                distance,
                outcome.confidence,
                state="matched",
            )

        if outcome is not None:
            logger.warning("Map matching unavailable (%s); using fallback route", outcome)
        valid = GeometryService.valid_lat_lon_pairs(locations)
        return self._route(
            valid,
            GeometryService.path_length_meters(valid),
            FALLBACK_CONFIDENCE,
            state="fallback",
            reason=reason or self._fallback_reason(outcome),
        )

    async def session_route_view(self, date: str, session: Session) -> dict[str, Any]:
        """Route plus image markers for one stored session."""
        route = await self.reconstruct(session.locations)
        markers = [
            {
                "id": image.id,
                "type": image.type,
                "latitude": image.location.latitude,
                "longitude": image.location.longitude,
                "thumbnailUrl": image.thumbnailUrl,
                "url": image.url,
                "description": image.description,
            }
            for image in session.images
            if image.location is not None
        ]
        return {
            "sessionId": session.sessionId,
            "date": date,
            "name": session.name,
            "startTime": session.startTime.isoformat(),
            "endTime": session.endTime.isoformat(),
            "locationCount": len(session.locations),
            "route": route.model_dump(),
            "markers": markers,
        }

    async def route_between(self, coords: str) -> dict[str, Any]:
        """Driving route through ``lon,lat;lon,lat``, or a haversine estimate."""
        pairs = parse_coordinate_string(coords)
        try:
            result = await self._client.route(pairs)
        except (
            CircuitOpen,
            ExternalServiceException,
            aiohttp.ClientError,
            asyncio.TimeoutError,
        ) as exc:
            logger.warning("OSRM route failed, returning fallback: %s", exc)
            fallback = GeometryService.path_length_meters(
                [(lat, lon) for lon, lat in pairs]
            )
            return {
                "distanceMeters": None,
                "durationSeconds": None,
                "geometry": None,
                "fallbackDistanceMeters": round(fallback),
            }
        return {
            "distanceMeters": result["distance_meters"],
            "durationSeconds": result["duration_seconds"],
            "geometry": result["geometry"],
        }
