"""
Geo Service Package.

Map matching against OSRM plus the point sampling and timestamp repair it
depends on.
"""

from .map_matching import RoadMatcherService
from .sampling import sample_points
from .schemas import (
    InsufficientPoints,
    MatchOk,
    MatchOutcome,
    NoMatch,
    ServiceError,
    parse_match_response,
    select_best_matching,
)
from .timestamp_utils import sanitize_timestamps, timestamps_for_points

__all__ = [
    "InsufficientPoints",
    "MatchOk",
    "MatchOutcome",
    "NoMatch",
    "RoadMatcherService",
    "ServiceError",
    "parse_match_response",
    "sample_points",
    "sanitize_timestamps",
    "select_best_matching",
    "timestamps_for_points",
]
