"""
Result types and response parsing for OSRM map matching.

A match attempt ends in exactly one of four outcomes. Callers branch on the
type (``isinstance`` or ``match``) instead of probing optional fields.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from core.spatial import LatLon

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class MatchOk:
    polyline: list[LatLon]
    confidence: float
    distance_meters: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "polyline": [list(p) for p in self.polyline],
            "confidence": self.confidence,
            "distance_meters": self.distance_meters,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchOk:
        return cls(
            polyline=[(float(p[0]), float(p[1])) for p in data["polyline"]],
            confidence=float(data["confidence"]),
            distance_meters=data.get("distance_meters"),
        )


@dataclass(frozen=True)
class NoMatch:
    """The service answered but produced no usable matching."""

    reason: str


@dataclass(frozen=True)
class ServiceError:
    """Transport failure, timeout, bad status, malformed body or open circuit."""

    reason: str
    status: int | None = None


@dataclass(frozen=True)
class InsufficientPoints:
    valid_count: int


MatchOutcome = MatchOk | NoMatch | ServiceError | InsufficientPoints


def _clamp_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return min(1.0, max(0.0, float(value)))


def _optional_distance(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return float(value)


def _geometry_to_polyline(geometry: Any) -> list[LatLon]:
    """GeoJSON ``[lon, lat]`` vertices to ``(lat, lon)`` tuples."""
    if isinstance(geometry, dict):
        coords = geometry.get("coordinates")
    else:
        coords = geometry
    if not isinstance(coords, list):
        return []

    polyline: list[LatLon] = []
    for vertex in coords:
        if not isinstance(vertex, list | tuple) or len(vertex) < 2:
            continue
        try:
            lon, lat = float(vertex[0]), float(vertex[1])
        except (TypeError, ValueError):
            continue
        if math.isfinite(lat) and math.isfinite(lon):
            polyline.append((lat, lon))
    return polyline


def parse_matching(raw: Any) -> MatchOk | None:
    """Convert one OSRM matching object; None when it carries no geometry."""
    if not isinstance(raw, dict):
        return None
    polyline = _geometry_to_polyline(raw.get("geometry"))
    if len(polyline) < 2:
        return None
    return MatchOk(
        polyline=polyline,
        confidence=_clamp_confidence(raw.get("confidence")),
        distance_meters=_optional_distance(raw.get("distance")),
    )


def select_best_matching(candidates: Iterable[MatchOk]) -> MatchOk | None:
    """Highest confidence wins; ties keep the earliest candidate."""
    best: MatchOk | None = None
    for candidate in candidates:
        if best is None or candidate.confidence > best.confidence:
            best = candidate
    return best


def parse_match_response(data: dict[str, Any]) -> MatchOk | NoMatch:
    code = data.get("code")
    if code != "Ok":
        message = data.get("message")
        reason = f"{code}: {message}" if message else str(code or "missing code")
        return NoMatch(reason=reason)

    matchings = data.get("matchings")
    if not isinstance(matchings, list) or not matchings:
        return NoMatch(reason="empty matchings")

    best = select_best_matching(
        candidate
        for candidate in (parse_matching(item) for item in matchings)
        if candidate is not None
    )
    if best is None:
        return NoMatch(reason="no matching with geometry")
    return best
