"""
Redis-backed cache for map-match results.

Entries are keyed by a digest of the exact request sent to OSRM (sampled
coordinates plus sanitized timestamps), so appending a point to a session
changes the key and stale entries simply expire via Redis TTL.

The cache is best effort: any Redis problem is logged at debug level and
treated as a miss.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any

from config import MAP_MATCH_CACHE_TTL_SECONDS
from core.redis import get_shared_redis

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)


def make_match_key(
    coordinates: Sequence[Sequence[float]],
    timestamps: Sequence[int],
    prefix: str = "osrm-match",
) -> str:
    """Produce a deterministic cache key for one match request."""
    raw = json.dumps(
        {
            "c": [[round(float(a), 6), round(float(b), 6)] for a, b in coordinates],
            "t": [int(ts) for ts in timestamps],
        },
        separators=(",", ":"),
    )
    digest = hashlib.sha256(raw.encode()).hexdigest()[:24]
    return f"cache:{prefix}:{digest}"


class MatchCache:
    def __init__(
        self,
        ttl_seconds: int,
        client_factory: Callable[[], Awaitable[Any]] = get_shared_redis,
    ) -> None:
        self.ttl_seconds = int(ttl_seconds)
        self._client_factory = client_factory

    async def get(self, key: str) -> dict[str, Any] | None:
        try:
            client = await self._client_factory()
            hit = await client.get(key)
            if hit is None:
                return None
            value = json.loads(hit)
        except Exception:
            logger.debug("Match cache read failed for %s", key, exc_info=True)
            return None
        return value if isinstance(value, dict) else None

    async def set(self, key: str, value: dict[str, Any]) -> bool:
        try:
            client = await self._client_factory()
            await client.set(key, json.dumps(value), ex=self.ttl_seconds)
        except Exception:
            logger.debug("Match cache write failed for %s", key, exc_info=True)
            return False
        return True


def build_match_cache(ttl_seconds: int | None = None) -> MatchCache | None:
    """Return a cache when a positive TTL is configured, else None."""
    ttl = MAP_MATCH_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    if ttl <= 0:
        return None
    return MatchCache(ttl)
