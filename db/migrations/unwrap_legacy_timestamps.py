"""
Rewrite legacy timestamp shapes in route documents as plain BSON dates.

Earlier app versions stored session and location times as ISO strings,
epoch numbers or ``{"$date": ...}`` wrappers. Loading a document through
``RouteDocument`` already normalizes every shape, so re-saving each document
is enough. Documents with nothing to fix are left untouched.

This script is safe to run multiple times.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from db import db_manager
from db.models import RouteDocument
from db.operations import save_route_document

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = ("startTime", "endTime", "timestampUTC")


def has_legacy_timestamps(value: Any) -> bool:
    """True when any known timestamp field holds something other than a date."""
    if isinstance(value, dict):
        for key, item in value.items():
            if key in TIMESTAMP_FIELDS and not isinstance(item, datetime):
                return True
            if has_legacy_timestamps(item):
                return True
    elif isinstance(value, list):
        return any(has_legacy_timestamps(item) for item in value)
    return False


async def migrate_route_documents() -> int:
    """Re-save every route document that still carries legacy timestamps."""
    collection = RouteDocument.get_pymongo_collection()
    migrated = 0
    async for raw in collection.find({}, {"_id": 1, "user": 1, "dates": 1}):
        if not has_legacy_timestamps(raw.get("dates")):
            continue
        document = await RouteDocument.get(raw["_id"])
        if document is None:
            continue
        await save_route_document(document)
        migrated += 1
        logger.debug("Normalized timestamps for user %s", raw.get("user"))
    return migrated


async def run() -> None:
    await db_manager.init_beanie()
    migrated = await migrate_route_documents()
    logger.info("Normalized legacy timestamps in %d route document(s).", migrated)
    await db_manager.cleanup_connections()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    asyncio.run(run())
