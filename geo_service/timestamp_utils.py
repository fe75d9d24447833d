"""Timestamp extraction and repair utilities for map matching."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from core.date_utils import epoch_seconds, get_current_utc_time

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

Number = int | float


def _usable(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def sanitize_timestamps(
    values: Sequence[Number | None],
    now: Number | None = None,
) -> list[Number]:
    """
    Repair epoch-second timestamps so they are strictly increasing.

    OSRM rejects match requests whose timestamps are not strictly
    increasing, and phones regularly report duplicate or slightly
    backwards clock readings. The repair is greedy: the first value is kept
    (``now`` when it is missing), and every later value that is missing,
    NaN or not greater than the previous output becomes ``previous + 1``.
    Values are never decreased and the input length is preserved.

    Args:
        values: Epoch seconds, possibly with gaps or disorder.
        now: Substitute for a missing first value. Defaults to the current
            UTC time in whole seconds.

    Returns:
        A new list, same length as ``values``.
    """
    if not values:
        return []

    first = values[0]
    if not _usable(first):
        first = now if _usable(now) else int(get_current_utc_time().timestamp())

    sanitized: list[Number] = [first]
    for value in values[1:]:
        previous = sanitized[-1]
        if _usable(value) and value > previous:
            sanitized.append(value)
        else:
            sanitized.append(previous + 1)
    return sanitized


def timestamps_for_points(points: Iterable[Any]) -> list[int | None]:
    """Integer epoch seconds from each point's ``timestampUTC``, or None."""
    timestamps: list[int | None] = []
    for point in points:
        if isinstance(point, dict):
            raw = point.get("timestampUTC")
        else:
            raw = getattr(point, "timestampUTC", None)
        timestamps.append(epoch_seconds(raw))
    return timestamps
