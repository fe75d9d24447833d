"""Downsampling of ordered point lists for request-size limited services."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Sequence

T = TypeVar("T")


def sample_points(points: Sequence[T], max_count: int) -> list[T]:
    """
    Bound ``points`` to roughly ``max_count`` entries.

    Keeps every ``ceil(len / max_count)``-th point starting with the first,
    then appends the original last point when the stride skipped it. The
    result can therefore hold ``max_count + 1`` points.

    Raises:
        ValueError: If ``max_count`` is less than 1.
    """
    if max_count < 1:
        msg = f"max_count must be at least 1, got {max_count}"
        raise ValueError(msg)

    total = len(points)
    if total <= max_count:
        return list(points)

    step = math.ceil(total / max_count)
    indices = list(range(0, total, step))
    if indices[-1] != total - 1:
        indices.append(total - 1)
    return [points[i] for i in indices]
