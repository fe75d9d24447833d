"""
Shared Redis client.

Redis only backs the map-match cache, so callers treat connection errors
from :func:`get_shared_redis` as a cache miss rather than a failure.
"""

from __future__ import annotations

import logging
import os
from typing import Final

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL: Final[str] = "redis://localhost:6379"
CONNECT_TIMEOUT_SECONDS: Final[float] = 2.0

_client: aioredis.Redis | None = None


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", "").strip() or DEFAULT_REDIS_URL


async def _alive(client: aioredis.Redis) -> bool:
    try:
        await client.ping()
    except (RedisConnectionError, OSError):
        return False
    return True


async def get_shared_redis() -> aioredis.Redis:
    """Return the process-wide client, reconnecting if the last one died."""
    global _client
    if _client is not None:
        if await _alive(_client):
            return _client
        logger.warning("Redis ping failed, opening a new connection")
        _client = None

    client = aioredis.from_url(
        get_redis_url(),
        decode_responses=True,
        socket_connect_timeout=CONNECT_TIMEOUT_SECONDS,
    )
    await client.ping()
    _client = client
    logger.info("Connected to Redis")
    return client


async def close_shared_redis() -> None:
    global _client
    if _client is None:
        return
    client, _client = _client, None
    await client.aclose()
    logger.info("Redis connection closed")
