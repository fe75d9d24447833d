import math
from datetime import UTC, datetime

import pytest

from geo_service.timestamp_utils import sanitize_timestamps, timestamps_for_points


def _strictly_increasing(values) -> bool:
    return all(b > a for a, b in zip(values, values[1:]))


def test_strictly_increasing_input_is_unchanged() -> None:
    values = [100, 101, 105, 200]
    assert sanitize_timestamps(values) == values


def test_duplicates_and_regressions_are_bumped() -> None:
    assert sanitize_timestamps([100, 100, 99, 150, 150]) == [100, 101, 102, 150, 151]


def test_missing_and_nan_values_follow_previous() -> None:
    assert sanitize_timestamps([100, None, math.nan, 110]) == [100, 101, 102, 110]


def test_missing_first_value_defaults_to_now() -> None:
    assert sanitize_timestamps([None, 5, 6000], now=5000) == [5000, 5001, 6000]


def test_missing_first_value_uses_clock_when_now_not_given() -> None:
    before = int(datetime.now(UTC).timestamp())
    result = sanitize_timestamps([None])
    assert result[0] >= before


def test_empty_input() -> None:
    assert sanitize_timestamps([]) == []


def test_never_decreases_a_value() -> None:
    values = [10, 50, 20, 30, 60, 60, None, 61]
    result = sanitize_timestamps(values)
    assert len(result) == len(values)
    assert _strictly_increasing(result)
    for original, repaired in zip(values, result):
        if isinstance(original, int):
            assert repaired >= original


@pytest.mark.parametrize(
    "values",
    [
        [5, 4, 3, 2, 1],
        [0, 0, 0, 0],
        [None, None, None],
        [1.5, 1.2, 2.0],
        ["x", 3, True, 4],
    ],
)
def test_output_is_strictly_increasing(values) -> None:
    result = sanitize_timestamps(values, now=0)
    assert len(result) == len(values)
    assert _strictly_increasing(result)


def test_timestamps_for_points_reads_timestamp_utc() -> None:
    points = [
        {"timestampUTC": datetime(2024, 1, 1, tzinfo=UTC)},
        {"timestampUTC": "2024-01-01T00:00:10Z"},
        {"timestampUTC": {"$date": "2024-01-01T00:00:20Z"}},
        {"timestampUTC": 1_704_067_230_000},
        {},
        {"timestampUTC": "garbage"},
    ]
    assert timestamps_for_points(points) == [
        1_704_067_200,
        1_704_067_210,
        1_704_067_220,
        1_704_067_230,
        None,
        None,
    ]
