"""Database package for MongoDB operations using Beanie ODM.

Modules:
    manager: DatabaseManager singleton for connection handling
    models: Beanie document and embedded models
    operations: retry-wrapped load/save helpers

Usage:
    from db import find_route_document, save_route_document

    doc = await find_route_document("driver-17")
"""

from db.manager import DatabaseManager, db_manager
from db.models import (
    ALL_DOCUMENT_MODELS,
    DateBucket,
    GeoPoint,
    ImageRecord,
    LocationPoint,
    RouteDocument,
    Session,
)
from db.operations import find_route_document, run_with_retry, save_route_document

__all__ = [
    "ALL_DOCUMENT_MODELS",
    "DatabaseManager",
    "DateBucket",
    "GeoPoint",
    "ImageRecord",
    "LocationPoint",
    "RouteDocument",
    "Session",
    "db_manager",
    "find_route_document",
    "run_with_retry",
    "save_route_document",
]
