from datetime import UTC, datetime, timedelta, timezone

from core.date_utils import (
    business_date_key,
    coerce_instant,
    ensure_utc,
    epoch_seconds,
    format_business_timestamp,
    get_current_utc_time,
    is_valid_date_key,
    parse_timestamp,
)


def test_parse_timestamp_handles_empty_and_invalid() -> None:
    assert parse_timestamp("") is None
    assert parse_timestamp("not-a-date") is None


def test_ensure_utc_handles_naive_datetime() -> None:
    value = datetime(2024, 1, 1, 12, 0, 0)
    normalized = ensure_utc(value)
    assert normalized is not None
    assert normalized.tzinfo == UTC
    assert normalized.hour == 12


def test_get_current_utc_time_returns_utc() -> None:
    assert get_current_utc_time().tzinfo == UTC


def test_coerce_instant_unwraps_legacy_shapes() -> None:
    expected = datetime(2024, 3, 10, 18, 29, 59, tzinfo=UTC)
    millis = int(expected.timestamp() * 1000)

    assert coerce_instant({"$date": "2024-03-10T18:29:59Z"}) == expected
    assert coerce_instant({"$date": {"$numberLong": str(millis)}}) == expected
    assert coerce_instant({"$date": millis}) == expected
    assert coerce_instant(millis) == expected
    assert coerce_instant(millis // 1000) == expected
    assert coerce_instant("2024-03-11T00:00:00+05:30") == datetime(
        2024, 3, 10, 18, 30, tzinfo=UTC,
    )


def test_coerce_instant_rejects_unusable_values() -> None:
    assert coerce_instant(None) is None
    assert coerce_instant(True) is None
    assert coerce_instant({"unexpected": 1}) is None
    assert coerce_instant(float("nan")) is None
    assert coerce_instant([1, 2]) is None


def test_epoch_seconds() -> None:
    assert epoch_seconds("1970-01-01T00:01:40Z") == 100
    assert epoch_seconds(None) is None


def test_business_date_key_near_day_boundary() -> None:
    # 18:30 UTC is midnight at +05:30.
    assert business_date_key(datetime(2024, 3, 10, 18, 29, 59, tzinfo=UTC)) == "2024-03-10"
    assert business_date_key(datetime(2024, 3, 10, 18, 30, 0, tzinfo=UTC)) == "2024-03-11"


def test_business_date_key_ignores_input_timezone() -> None:
    instant = datetime(2024, 3, 10, 18, 30, 0, tzinfo=UTC)
    same_instant_elsewhere = instant.astimezone(timezone(timedelta(hours=-8)))
    assert business_date_key(same_instant_elsewhere) == business_date_key(instant)


def test_format_business_timestamp() -> None:
    value = datetime(2024, 1, 1, 0, 0, 0, tzinfo=UTC)
    assert format_business_timestamp(value) == "2024-01-01T05:30:00+05:30"


def test_is_valid_date_key() -> None:
    assert is_valid_date_key("2024-02-29")
    assert not is_valid_date_key("2023-02-29")
    assert not is_valid_date_key("2024-2-3")
    assert not is_valid_date_key("osrm")
    assert not is_valid_date_key(None)
