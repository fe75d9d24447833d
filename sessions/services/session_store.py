"""Business logic for storing driver sessions in per-user route documents.

Every operation is a single-document read-modify-write of the caller's
``RouteDocument``. Concurrent writers to the same document race and the
last save wins; one device per session is the expected usage.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from core.date_utils import (
    business_date_key,
    coerce_instant,
    get_current_utc_time,
    is_valid_date_key,
)
from core.exceptions import (
    DuplicateResourceException,
    ResourceNotFoundException,
    ValidationException,
)
from core.spatial import GeometryService
from db.models import (
    DateBucket,
    GeoPoint,
    ImageRecord,
    LocationPoint,
    RouteDocument,
    Session,
)
from db.operations import find_route_document, save_route_document

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"sess-{uuid.uuid4().hex[:16]}"


def new_image_id() -> str:
    return f"img-{uuid.uuid4().hex[:16]}"


def _field(raw: Any, *names: str) -> Any:
    for name in names:
        if isinstance(raw, dict):
            if raw.get(name) is not None:
                return raw[name]
        elif getattr(raw, name, None) is not None:
            return getattr(raw, name)
    return None


def build_location(raw: Any, now: datetime, index: int = 0) -> LocationPoint:
    """
    Convert one submitted point into a stored ``LocationPoint``.

    A point without a timestamp is stamped with ``now``; ordering within a
    batch then relies on submission order alone.
    """
    latitude = _field(raw, "latitude")
    longitude = _field(raw, "longitude")
    if latitude is None or longitude is None:
        msg = f"Location {index} requires latitude and longitude"
        raise ValidationException(msg)
    if not GeometryService.is_valid_coordinate(
        {"latitude": latitude, "longitude": longitude}
    ):
        msg = f"Location {index} has invalid coordinates"
        raise ValidationException(msg, {"latitude": latitude, "longitude": longitude})

    raw_ts = _field(raw, "timestamp", "timestampUTC")
    if raw_ts is None:
        timestamp = now
    else:
        timestamp = coerce_instant(raw_ts)
        if timestamp is None:
            msg = f"Location {index} has an unreadable timestamp"
            raise ValidationException(msg, {"timestamp": str(raw_ts)})

    return LocationPoint(
        latitude=float(latitude),
        longitude=float(longitude),
        timestampUTC=timestamp,
    )


def _require_date_key(date: str) -> str:
    if not is_valid_date_key(date):
        msg = f"Invalid date '{date}', expected YYYY-MM-DD"
        raise ValidationException(msg)
    return date


class SessionStoreService:
    """Service class for session create, merge, query and delete operations."""

    @staticmethod
    async def _load_existing(owner_id: str) -> RouteDocument:
        document = await find_route_document(owner_id)
        if document is None:
            msg = f"No routes recorded for user {owner_id}"
            raise ResourceNotFoundException(msg)
        return document

    @staticmethod
    def _locate(document: RouteDocument, session_id: str) -> tuple[str, Session]:
        located = document.find_session(session_id)
        if located is None:
            msg = f"Session {session_id} not found"
            raise ResourceNotFoundException(msg)
        return located

    @staticmethod
    async def sync_batch(
        owner_id: str,
        points: Sequence[Any],
        session_id: str | None = None,
        trip_name: str | None = None,
        *,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Merge one batch of locations into a session.

        The batch replaces the session's locations (clients re-send the full
        trip on every sync). ``endTime`` only moves forward, ``name`` is set
        once, and the session never moves out of the date bucket it was
        created in.

        Args:
            owner_id: User whose route document receives the batch.
            points: Submitted locations, in recording order.
            session_id: Client session id; generated when absent.
            trip_name: Optional display name for a new or unnamed session.
            now: Substitute for missing point timestamps.

        Returns:
            ``{"sessionId", "date", "created", "locationCount"}``

        Raises:
            ValidationException: If the batch is empty or a point is unusable.
        """
        if not points:
            msg = "No locations provided"
            raise ValidationException(msg)

        stamp = now or get_current_utc_time()
        locations = [build_location(p, stamp, i) for i, p in enumerate(points)]
        first_time = locations[0].timestampUTC
        last_time = locations[-1].timestampUTC
        session_id = session_id or new_session_id()
        trip_name = trip_name.strip() if trip_name else None

        document = await find_route_document(owner_id)
        if document is None:
            document = RouteDocument(user=owner_id)

        located = document.find_session(session_id)
        if located is None:
            date_key = business_date_key(first_time)
            bucket = document.dates.setdefault(date_key, DateBucket())
            bucket.sessions.append(
                Session(
                    sessionId=session_id,
                    startTime=first_time,
                    endTime=max(first_time, last_time),
                    locations=locations,
                    name=trip_name or None,
                ),
            )
            created = True
        else:
            date_key, session = located
            session.locations = locations
            session.endTime = max(session.endTime, last_time)
            if trip_name and not session.name:
                session.name = trip_name
            created = False

        await save_route_document(document)
        logger.info(
            "Synced %d locations into session %s (%s) for user %s",
            len(locations),
            session_id,
            "created" if created else "updated",
            owner_id,
        )
        return {
            "sessionId": session_id,
            "date": date_key,
            "created": created,
            "locationCount": len(locations),
        }

    @staticmethod
    async def create_session(
        owner_id: str,
        *,
        start_time: datetime,
        end_time: datetime,
        session_id: str | None = None,
        date: str | None = None,
        locations: Sequence[Any] = (),
        name: str | None = None,
    ) -> dict[str, Any]:
        start = coerce_instant(start_time)
        end = coerce_instant(end_time)
        if start is None or end is None:
            msg = "startTime and endTime are required"
            raise ValidationException(msg)
        if end < start:
            msg = "endTime must not be earlier than startTime"
            raise ValidationException(msg)

        date_key = _require_date_key(date) if date else business_date_key(start)
        session_id = session_id or new_session_id()
        stamp = get_current_utc_time()
        stored = [build_location(p, stamp, i) for i, p in enumerate(locations)]

        document = await find_route_document(owner_id)
        if document is None:
            document = RouteDocument(user=owner_id)
        if document.find_session(session_id) is not None:
            msg = f"Session {session_id} already exists"
            raise DuplicateResourceException(msg)

        bucket = document.dates.setdefault(date_key, DateBucket())
        bucket.sessions.append(
            Session(
                sessionId=session_id,
                startTime=start,
                endTime=end,
                locations=stored,
                name=name.strip() if name and name.strip() else None,
            ),
        )
        await save_route_document(document)
        logger.info("Created session %s on %s for user %s", session_id, date_key, owner_id)
        return {"sessionId": session_id, "date": date_key}

    @staticmethod
    async def add_location(
        owner_id: str,
        date: str,
        session_id: str,
        point: Any,
    ) -> dict[str, Any]:
        """Append a single point; ``endTime`` follows it when later."""
        _require_date_key(date)
        document = await find_route_document(owner_id)
        if document is None or date not in document.dates:
            msg = f"No routes recorded on {date}"
            raise ResourceNotFoundException(msg)

        session = next(
            (s for s in document.dates[date].sessions if s.sessionId == session_id),
            None,
        )
        if session is None:
            msg = f"Session {session_id} not found on {date}"
            raise ResourceNotFoundException(msg)

        location = build_location(point, get_current_utc_time())
        session.locations.append(location)
        if location.timestampUTC > session.endTime:
            session.endTime = location.timestampUTC

        await save_route_document(document)
        return {
            "sessionId": session_id,
            "date": date,
            "locationCount": len(session.locations),
        }

    @staticmethod
    async def list_dates(owner_id: str) -> list[str]:
        document = await find_route_document(owner_id)
        if document is None:
            return []
        return document.sorted_date_keys()

    @staticmethod
    async def get_sessions_by_date(owner_id: str, date: str) -> list[Session]:
        _require_date_key(date)
        document = await find_route_document(owner_id)
        if document is None:
            return []
        bucket = document.dates.get(date)
        return list(bucket.sessions) if bucket else []

    @staticmethod
    async def get_session(owner_id: str, session_id: str) -> tuple[str, Session]:
        document = await SessionStoreService._load_existing(owner_id)
        return SessionStoreService._locate(document, session_id)

    @staticmethod
    async def delete_session(owner_id: str, session_id: str) -> dict[str, Any]:
        document = await SessionStoreService._load_existing(owner_id)
        date_key, _session = SessionStoreService._locate(document, session_id)

        bucket = document.dates[date_key]
        bucket.sessions = [s for s in bucket.sessions if s.sessionId != session_id]
        if not bucket.sessions:
            del document.dates[date_key]

        await save_route_document(document)
        logger.info("Deleted session %s (%s) for user %s", session_id, date_key, owner_id)
        return {"sessionId": session_id, "date": date_key, "deleted": True}

    @staticmethod
    async def rename_session(
        owner_id: str,
        session_id: str,
        name: str,
    ) -> dict[str, Any]:
        """Explicit rename; unlike sync, this overwrites an existing name."""
        cleaned = (name or "").strip()
        if not cleaned:
            msg = "Session name must not be empty"
            raise ValidationException(msg)

        document = await SessionStoreService._load_existing(owner_id)
        date_key, session = SessionStoreService._locate(document, session_id)
        session.name = cleaned
        await save_route_document(document)
        return {"sessionId": session_id, "date": date_key, "name": cleaned}

    @staticmethod
    async def add_image(
        owner_id: str,
        session_id: str,
        image: Any,
    ) -> ImageRecord:
        document = await SessionStoreService._load_existing(owner_id)
        _date_key, session = SessionStoreService._locate(document, session_id)

        image_id = _field(image, "id") or new_image_id()
        if any(existing.id == image_id for existing in session.images):
            msg = f"Image {image_id} already attached to session {session_id}"
            raise DuplicateResourceException(msg)

        raw_location = _field(image, "location")
        location = None
        if raw_location is not None:
            pair = GeometryService.to_lat_lon(raw_location)
            if pair is None or not GeometryService.is_valid_coordinate(pair):
                msg = "Image location has invalid coordinates"
                raise ValidationException(msg)
            location = GeoPoint(latitude=pair[0], longitude=pair[1])

        raw_ts = _field(image, "timestamp", "timestampUTC")
        timestamp = coerce_instant(raw_ts) if raw_ts is not None else None

        try:
            record = ImageRecord(
                id=image_id,
                url=_field(image, "url"),
                thumbnailUrl=_field(image, "thumbnailUrl"),
                type=_field(image, "type"),
                timestampUTC=timestamp or get_current_utc_time(),
                location=location,
                description=_field(image, "description"),
            )
        except ValueError as exc:
            msg = "Invalid image metadata"
            raise ValidationException(msg, {"error": str(exc)}) from exc

        session.images.append(record)
        await save_route_document(document)
        return record

    @staticmethod
    async def list_images(owner_id: str, session_id: str) -> list[ImageRecord]:
        _date_key, session = await SessionStoreService.get_session(owner_id, session_id)
        return list(session.images)
