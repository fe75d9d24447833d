"""
Spatial and geometry utilities.

Centralizes coordinate validation and great-circle distance calculations.
Coordinates are handled as ``(latitude, longitude)`` pairs, matching what
drivers submit and what map display libraries expect; the OSRM boundary is
the only place that speaks ``lon,lat``.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

LatLon = tuple[float, float]


class GeometryService:
    """Authoritative geometry operations for the application."""

    EARTH_RADIUS_M = 6371000.0

    @staticmethod
    def to_lat_lon(coord: Any) -> LatLon | None:
        """
        Extract a ``(lat, lon)`` pair from a point-like value.

        Accepts mappings with ``latitude``/``longitude`` keys, objects with
        those attributes, and 2-sequences already in ``(lat, lon)`` order.
        """
        if coord is None:
            return None
        if isinstance(coord, dict):
            lat, lon = coord.get("latitude"), coord.get("longitude")
        elif hasattr(coord, "latitude") and hasattr(coord, "longitude"):
            lat, lon = coord.latitude, coord.longitude
        elif isinstance(coord, list | tuple) and len(coord) >= 2:
            lat, lon = coord[0], coord[1]
        else:
            return None
        if isinstance(lat, bool) or isinstance(lon, bool):
            return None
        try:
            return float(lat), float(lon)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def is_valid_coordinate(coord: Any) -> bool:
        """Latitude finite in [-90, 90] and longitude finite in [-180, 180]."""
        pair = GeometryService.to_lat_lon(coord)
        if pair is None:
            return False
        lat, lon = pair
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0

    @staticmethod
    def distance_meters(a: Any, b: Any) -> float:
        """Great-circle distance between two points using the Haversine formula.

        NaN coordinates propagate to a NaN result.
        """
        pa = GeometryService.to_lat_lon(a)
        pb = GeometryService.to_lat_lon(b)
        if pa is None or pb is None:
            return math.nan
        lat1, lon1 = pa
        lat2, lon2 = pb
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        dphi = math.radians(lat2 - lat1)
        dlmb = math.radians(lon2 - lon1)
        h = (
            math.sin(dphi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
        )
        if math.isnan(h):
            return math.nan
        # Rounding can push h just past 1 for antipodal points.
        return 2 * GeometryService.EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))

    @staticmethod
    def path_length_meters(points: Sequence[Any]) -> float:
        """Sum of distances between consecutive points."""
        total = 0.0
        for prev, curr in zip(points, points[1:]):
            total += GeometryService.distance_meters(prev, curr)
        return total

    @staticmethod
    def valid_lat_lon_pairs(points: Iterable[Any]) -> list[LatLon]:
        """Keep only valid points, converted to ``(lat, lon)`` tuples."""
        cleaned: list[LatLon] = []
        for point in points:
            if not GeometryService.is_valid_coordinate(point):
                continue
            pair = GeometryService.to_lat_lon(point)
            if pair is not None:
                cleaned.append(pair)
        return cleaned


distance_meters = GeometryService.distance_meters
is_valid_coordinate = GeometryService.is_valid_coordinate
path_length_meters = GeometryService.path_length_meters
