"""Centralized configuration for environment variables and external APIs.

This module is the single source of truth for configuration used across the
application. Import constants from here rather than calling os.getenv directly
in multiple places.

Drivers operate in a single region, so calendar dates ("business days") are
computed in one fixed-offset timezone instead of UTC. A session that crosses
midnight in that zone stays in the bucket of its first point.
"""

from __future__ import annotations

import os
from datetime import timedelta, timezone
from typing import Final

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


# --- OSRM Configuration ---
DEFAULT_OSRM_BASE_URL: Final[str] = "https://router.project-osrm.org"
DEFAULT_OSRM_PROFILE: Final[str] = "driving"

# --- Map matching ---
# The public OSRM demo server rejects match requests above 100 coordinates.
MAP_MATCH_MAX_POINTS: Final[int] = _env_int("MAP_MATCH_MAX_POINTS", 100)
# Assumed GPS accuracy, sent as the per-point search radius.
MAP_MATCH_RADIUS_METERS: Final[float] = _env_float("MAP_MATCH_RADIUS_METERS", 10.0)
MAP_MATCH_TIMEOUT_SECONDS: Final[float] = _env_float(
    "MAP_MATCH_TIMEOUT_SECONDS",
    15.0,
)
# Outer bound on a whole reconstruction, slightly above the HTTP timeout.
RECONSTRUCTION_TIMEOUT_SECONDS: Final[float] = _env_float(
    "RECONSTRUCTION_TIMEOUT_SECONDS",
    MAP_MATCH_TIMEOUT_SECONDS + 5.0,
)
# Zero disables the match result cache.
MAP_MATCH_CACHE_TTL_SECONDS: Final[int] = _env_int("MAP_MATCH_CACHE_TTL_SECONDS", 0)

# --- Business timezone (date bucketing and display) ---
BUSINESS_TZ_OFFSET_MINUTES: Final[int] = _env_int("BUSINESS_TZ_OFFSET_MINUTES", 330)
BUSINESS_TZ_NAME: Final[str] = os.getenv("BUSINESS_TZ_NAME", "IST")


def get_osrm_base_url() -> str:
    """Return the OSRM base URL without a trailing slash."""
    raw = os.getenv("OSRM_BASE_URL", "").strip() or DEFAULT_OSRM_BASE_URL
    return raw.rstrip("/")


def get_osrm_profile() -> str:
    return os.getenv("OSRM_PROFILE", "").strip() or DEFAULT_OSRM_PROFILE


def require_osrm_match_url() -> str:
    return f"{get_osrm_base_url()}/match/v1/{get_osrm_profile()}"


def require_osrm_route_url() -> str:
    return f"{get_osrm_base_url()}/route/v1/{get_osrm_profile()}"


def get_business_timezone() -> timezone:
    """Fixed-offset timezone used for date keys and display timestamps."""
    return timezone(timedelta(minutes=BUSINESS_TZ_OFFSET_MINUTES), BUSINESS_TZ_NAME)


__all__ = [
    "BUSINESS_TZ_NAME",
    "BUSINESS_TZ_OFFSET_MINUTES",
    "MAP_MATCH_CACHE_TTL_SECONDS",
    "MAP_MATCH_MAX_POINTS",
    "MAP_MATCH_RADIUS_METERS",
    "MAP_MATCH_TIMEOUT_SECONDS",
    "RECONSTRUCTION_TIMEOUT_SECONDS",
    "get_business_timezone",
    "get_osrm_base_url",
    "get_osrm_profile",
    "require_osrm_match_url",
    "require_osrm_route_url",
]
