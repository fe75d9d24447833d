from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import aiohttp
import pytest

from core.exceptions import ExternalServiceException
from core.http.circuit_breaker import CircuitOpen
from core.http.osrm import OsrmClient
from geo_service.map_matching import RoadMatcherService
from geo_service.schemas import InsufficientPoints, MatchOk, NoMatch, ServiceError
from tests.http_fakes import FakeResponse, FakeSession

START = datetime(2024, 3, 10, 4, 0, tzinfo=UTC)
START_EPOCH = int(START.timestamp())

OK_BODY = {
    "code": "Ok",
    "matchings": [
        {
            "confidence": 0.92,
            "distance": 310.5,
            "geometry": {
                "type": "LineString",
                "coordinates": [[77.5946, 12.9716], [77.5950, 12.9720], [77.5960, 12.9730]],
            },
        },
    ],
}


def _points(count: int, *, step_seconds: int = 5) -> list[dict]:
    return [
        {
            "latitude": 12.9716 + i * 0.0001,
            "longitude": 77.5946 + i * 0.0001,
            "timestampUTC": START + timedelta(seconds=i * step_seconds),
        }
        for i in range(count)
    ]


def _stub_client(**kwargs) -> AsyncMock:
    client = AsyncMock(spec=OsrmClient)
    client.match = AsyncMock(**kwargs)
    return client


@pytest.mark.asyncio
async def test_fewer_than_two_valid_points_skips_service() -> None:
    client = _stub_client(return_value=OK_BODY)
    service = RoadMatcherService(client=client)
    points = [
        {"latitude": 12.97, "longitude": 77.59, "timestampUTC": START},
        {"latitude": 95.0, "longitude": 77.59, "timestampUTC": START},
        {"latitude": None, "longitude": 77.59, "timestampUTC": START},
    ]

    outcome = await service.match(points)

    assert outcome == InsufficientPoints(valid_count=1)
    client.match.assert_not_awaited()


@pytest.mark.asyncio
async def test_sends_lon_lat_with_sanitized_timestamps() -> None:
    client = _stub_client(return_value=OK_BODY)
    service = RoadMatcherService(client=client)
    points = _points(3)
    # Duplicate clock reading on the last point.
    points[2]["timestampUTC"] = points[1]["timestampUTC"]
    points.insert(1, {"latitude": float("nan"), "longitude": 0.0})

    outcome = await service.match(points)

    assert isinstance(outcome, MatchOk)
    assert outcome.confidence == 0.92
    assert outcome.distance_meters == 310.5
    assert outcome.polyline[0] == (12.9716, 77.5946)

    args, kwargs = client.match.await_args
    coordinates = args[0]
    assert coordinates[0] == (77.5946, 12.9716)
    assert len(coordinates) == 3
    assert kwargs["timestamps"] == [START_EPOCH, START_EPOCH + 5, START_EPOCH + 6]
    assert kwargs["radius_meters"] == 10.0
    assert kwargs["timeout"] == 15.0


@pytest.mark.asyncio
async def test_long_sessions_are_sampled() -> None:
    client = _stub_client(return_value=OK_BODY)
    service = RoadMatcherService(client=client, max_points=100)

    await service.match(_points(251))

    coordinates = client.match.await_args.args[0]
    timestamps = client.match.await_args.kwargs["timestamps"]
    assert len(coordinates) == 85
    assert len(timestamps) == 85
    assert timestamps[-1] == START_EPOCH + 250 * 5


@pytest.mark.asyncio
async def test_no_match_code_is_reported() -> None:
    client = _stub_client(return_value={"code": "NoMatch", "message": "Could not match"})
    service = RoadMatcherService(client=client)

    outcome = await service.match(_points(4))

    assert outcome == NoMatch(reason="NoMatch: Could not match")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected_status"),
    [
        (ExternalServiceException("OSRM match error: 502", {"status": 502}), 502),
        (CircuitOpen("OSRM", 30), None),
        (aiohttp.ClientConnectionError("refused"), None),
        (TimeoutError(), None),
    ],
)
async def test_service_failures_become_service_error(
    error: BaseException,
    expected_status: int | None,
) -> None:
    service = RoadMatcherService(client=_stub_client(side_effect=error))

    outcome = await service.match(_points(4))

    assert isinstance(outcome, ServiceError)
    assert outcome.status == expected_status


@pytest.mark.asyncio
async def test_cache_hit_skips_service() -> None:
    cached = MatchOk(polyline=[(1.0, 2.0), (1.1, 2.1)], confidence=0.7)
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=cached.to_dict())
    client = _stub_client(return_value=OK_BODY)
    service = RoadMatcherService(client=client, cache=cache)

    outcome = await service.match(_points(3))

    assert outcome == cached
    client.match.assert_not_awaited()


@pytest.mark.asyncio
async def test_successful_match_is_cached() -> None:
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock(return_value=True)
    service = RoadMatcherService(client=_stub_client(return_value=OK_BODY), cache=cache)

    outcome = await service.match(_points(3))

    key, value = cache.set.await_args.args
    assert key == cache.get.await_args.args[0]
    assert value == outcome.to_dict()


@pytest.mark.asyncio
async def test_real_client_with_fake_transport(monkeypatch: pytest.MonkeyPatch) -> None:
    session = FakeSession(get_responses=[FakeResponse(status=200, json_data=OK_BODY)])
    monkeypatch.setattr("core.http.osrm.get_session", AsyncMock(return_value=session))
    service = RoadMatcherService(client=OsrmClient())

    outcome = await service.match(_points(3))

    assert isinstance(outcome, MatchOk)
    _method, url, kwargs = session.requests[0]
    assert "/match/v1/driving/77.594600,12.971600;" in url
    assert kwargs["params"]["radiuses"] == "10;10;10"
