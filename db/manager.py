"""
MongoDB connection handling for route documents.

``db_manager`` owns one Motor client per event loop. Motor binds a client to
the loop that created it, so a loop change (tests, reloads) drops the old
client and Beanie is initialized again on the next call.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from datetime import UTC
from typing import Any, Final, Self

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

DEFAULT_MONGO_URI: Final[str] = "mongodb://localhost:27017"
DEFAULT_DATABASE_NAME: Final[str] = "route_tracker"
APP_NAME: Final[str] = "DriverRouteTracker"


@dataclass(frozen=True)
class MongoSettings:
    """Connection settings read from ``MONGODB_*`` environment variables."""

    uri: str = DEFAULT_MONGO_URI
    database: str = DEFAULT_DATABASE_NAME
    max_pool_size: int = 50
    connect_timeout_ms: int = 5000
    server_selection_timeout_ms: int = 10000
    socket_timeout_ms: int = 30000

    @classmethod
    def from_env(cls) -> MongoSettings:
        return cls(
            uri=os.getenv("MONGODB_URI", "").strip() or DEFAULT_MONGO_URI,
            database=os.getenv("MONGODB_DATABASE", "").strip()
            or DEFAULT_DATABASE_NAME,
            max_pool_size=int(os.getenv("MONGODB_MAX_POOL_SIZE", "50")),
            connect_timeout_ms=int(os.getenv("MONGODB_CONNECTION_TIMEOUT_MS", "5000")),
            server_selection_timeout_ms=int(
                os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "10000"),
            ),
            socket_timeout_ms=int(os.getenv("MONGODB_SOCKET_TIMEOUT_MS", "30000")),
        )

    def client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "tz_aware": True,
            "tzinfo": UTC,
            "maxPoolSize": self.max_pool_size,
            "connectTimeoutMS": self.connect_timeout_ms,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "socketTimeoutMS": self.socket_timeout_ms,
            "retryWrites": True,
            "retryReads": True,
            "appname": APP_NAME,
        }
        # Atlas clusters need an explicit CA bundle on slim images
        if self.uri.startswith("mongodb+srv://"):
            kwargs.update(tls=True, tlsCAFile=certifi.where())
        return kwargs


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DatabaseManager:
    """Process-wide holder of the Motor client and the Beanie init state."""

    _instance: DatabaseManager | None = None
    _lock = threading.Lock()

    def __new__(cls) -> Self:
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._client = None
                instance._db = None
                instance._loop = None
                instance._beanie_ready = False
                instance.settings = MongoSettings.from_env()
                cls._instance = instance
        return cls._instance

    _client: AsyncIOMotorClient | None
    _db: AsyncIOMotorDatabase | None
    _loop: asyncio.AbstractEventLoop | None
    _beanie_ready: bool
    settings: MongoSettings

    def _reset(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None
        self._loop = None
        self._beanie_ready = False

    def _drop_stale_client(self) -> None:
        if self._client is None:
            return
        loop = _running_loop()
        if (self._loop is not None and self._loop.is_closed()) or (
            loop is not None and loop is not self._loop
        ):
            logger.info("Event loop changed, reconnecting MongoDB client")
            self._reset()

    @property
    def db(self) -> AsyncIOMotorDatabase:
        self._drop_stale_client()
        if self._db is None:
            self._client = AsyncIOMotorClient(
                self.settings.uri,
                **self.settings.client_kwargs(),
            )
            self._db = self._client[self.settings.database]
            self._loop = _running_loop()
            logger.info("MongoDB client created for database %s", self.settings.database)
        return self._db

    async def init_beanie(self) -> None:
        """Register document models with Beanie once per event loop."""
        self._drop_stale_client()
        if self._beanie_ready:
            return

        from beanie import init_beanie

        from db.models import ALL_DOCUMENT_MODELS

        await init_beanie(database=self.db, document_models=ALL_DOCUMENT_MODELS)
        self._beanie_ready = True
        logger.info("Beanie initialized with %d document models", len(ALL_DOCUMENT_MODELS))

    async def cleanup_connections(self) -> None:
        if self._client is None:
            return
        logger.info("Closing MongoDB client")
        self._reset()


db_manager = DatabaseManager()
