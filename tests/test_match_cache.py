from __future__ import annotations

from typing import Any

import pytest

from core.cache import MatchCache, build_match_cache, make_match_key


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self.values[key] = value
        self.expiry[key] = ex


class BrokenRedis:
    async def get(self, key: str) -> Any:
        raise ConnectionError("redis down")

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        raise ConnectionError("redis down")


def _factory(client: Any):
    async def factory() -> Any:
        return client

    return factory


def test_match_key_is_stable_and_request_specific() -> None:
    coords = [(77.5946, 12.9716), (77.6, 12.98)]
    key = make_match_key(coords, [100, 160])

    assert key.startswith("cache:osrm-match:")
    assert key == make_match_key([(77.5946, 12.9716), (77.6, 12.98)], [100, 160])
    assert key != make_match_key(coords, [100, 161])
    assert key != make_match_key([*coords, (77.61, 12.99)], [100, 160, 220])


def test_build_match_cache_disabled_without_ttl() -> None:
    assert build_match_cache(0) is None
    assert build_match_cache(-5) is None
    cache = build_match_cache(300)
    assert isinstance(cache, MatchCache)
    assert cache.ttl_seconds == 300


@pytest.mark.asyncio
async def test_cache_round_trips_with_ttl() -> None:
    redis = FakeRedis()
    cache = MatchCache(120, client_factory=_factory(redis))

    assert await cache.get("k") is None
    assert await cache.set("k", {"confidence": 0.9}) is True
    assert await cache.get("k") == {"confidence": 0.9}
    assert redis.expiry["k"] == 120


@pytest.mark.asyncio
async def test_cache_treats_redis_errors_as_miss() -> None:
    cache = MatchCache(120, client_factory=_factory(BrokenRedis()))

    assert await cache.get("k") is None
    assert await cache.set("k", {"confidence": 0.9}) is False


@pytest.mark.asyncio
async def test_cache_ignores_non_object_entries() -> None:
    redis = FakeRedis()
    redis.values["k"] = "[1, 2, 3]"
    cache = MatchCache(120, client_factory=_factory(redis))

    assert await cache.get("k") is None
