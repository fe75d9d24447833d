"""
Timestamp helpers shared by the session store, the route documents and the
OSRM timestamp sanitizer.

Every instant leaving this module is timezone-aware UTC. Naive inputs are
read as UTC. Rows written by older schema versions may hold a wrapper
object (``{"$date": ...}``) or a bare epoch number, and both are unwrapped
here. Day bucketing and display strings use the configured fixed-offset
business timezone rather than the process timezone.
"""

import logging
import math
from datetime import UTC, datetime
from typing import Any

from dateutil import parser

from config import get_business_timezone

logger = logging.getLogger(__name__)

DATE_KEY_FORMAT = "%Y-%m-%d"

# Epoch values above this are treated as milliseconds (year 5138 in seconds).
_EPOCH_MILLIS_THRESHOLD = 1e11


def get_current_utc_time() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive values and convert aware ones."""
    if dt is None:
        return None
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def parse_timestamp(ts: str | datetime) -> datetime | None:
    """ISO 8601 string or datetime to a UTC datetime; None when unparseable."""
    if isinstance(ts, datetime):
        return ensure_utc(ts)
    if not ts:
        return None
    try:
        return ensure_utc(parser.isoparse(ts))
    except (ValueError, TypeError, OverflowError):
        logger.warning("Unparseable timestamp %r", ts)
        return None


def _from_epoch(value: float) -> datetime | None:
    if not math.isfinite(value):
        return None
    seconds = value / 1000.0 if abs(value) >= _EPOCH_MILLIS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        logger.warning("Epoch value out of range: %s", value)
        return None


def coerce_instant(value: Any) -> datetime | None:
    """
    Normalize any stored or submitted timestamp shape to a UTC instant.

    Accepts datetimes, ISO strings, epoch seconds or milliseconds, and the
    wrapped forms ``{"$date": <iso|millis>}`` and
    ``{"$date": {"$numberLong": "<millis>"}}`` left behind by an earlier
    schema. Returns None when nothing usable is found.
    """
    if value is None:
        return None

    if isinstance(value, dict):
        if "$date" in value:
            return coerce_instant(value["$date"])
        if "$numberLong" in value:
            try:
                return _from_epoch(float(value["$numberLong"]))
            except (TypeError, ValueError):
                return None
        return None

    if isinstance(value, bool):
        return None

    if isinstance(value, int | float):
        return _from_epoch(float(value))

    if isinstance(value, datetime | str):
        return ensure_utc(parse_timestamp(value))

    logger.warning("Unsupported timestamp type '%s'", type(value))
    return None


def epoch_seconds(value: Any) -> int | None:
    """Integer epoch seconds for a timestamp-like value, or None."""
    instant = coerce_instant(value)
    if instant is None:
        return None
    return int(instant.timestamp())


def business_date_key(value: datetime) -> str:
    """Calendar date (YYYY-MM-DD) of an instant in the business timezone."""
    instant = ensure_utc(value)
    return instant.astimezone(get_business_timezone()).strftime(DATE_KEY_FORMAT)


def format_business_timestamp(value: datetime) -> str:
    """Display string such as ``2024-01-01T05:30:00+05:30``."""
    instant = ensure_utc(value)
    return instant.astimezone(get_business_timezone()).isoformat(timespec="seconds")


def is_valid_date_key(value: str | None) -> bool:
    if not value:
        return False
    try:
        parsed = datetime.strptime(value, DATE_KEY_FORMAT)
    except ValueError:
        return False
    return parsed.strftime(DATE_KEY_FORMAT) == value
