"""Beanie ODM document models for MongoDB collections.

One ``RouteDocument`` per user holds every tracked session, grouped by
business-day date key::

    {
        "user": "driver-17",
        "dates": {
            "2024-03-10": {"sessions": [{"sessionId": ..., "locations": [...]}]}
        }
    }

Timestamp fields accept every shape earlier schema versions wrote
(BSON dates, ISO strings, epoch numbers, ``{"$date": ...}`` wrappers) and
normalize them to UTC-aware datetimes on load. Saving a loaded document
therefore always writes plain instants back.

Usage:
    from db.models import RouteDocument

    doc = await RouteDocument.find_one(RouteDocument.user == "driver-17")
    located = doc.find_session("sess-1a2b") if doc else None
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.date_utils import coerce_instant, format_business_timestamp

ImageType = Literal["start_speedometer", "end_speedometer", "journey_stop"]


def _require_instant(value: Any) -> datetime:
    instant = coerce_instant(value)
    if instant is None:
        msg = f"Unrecognized timestamp value: {value!r}"
        raise ValueError(msg)
    return instant


class GeoPoint(BaseModel):
    latitude: float
    longitude: float


class LocationPoint(BaseModel):
    """One GPS fix. Immutable once stored."""

    model_config = ConfigDict(extra="ignore")

    latitude: float
    longitude: float
    timestampUTC: datetime
    timestampIST: str | None = None

    @field_validator("timestampUTC", mode="before")
    @classmethod
    def parse_timestamp_utc(cls, v: Any) -> datetime:
        return _require_instant(v)

    @model_validator(mode="after")
    def fill_display_timestamp(self) -> LocationPoint:
        if not self.timestampIST:
            self.timestampIST = format_business_timestamp(self.timestampUTC)
        return self


class ImageRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    url: str
    thumbnailUrl: str | None = None
    type: ImageType
    timestampUTC: datetime
    location: GeoPoint | None = None
    description: str | None = None

    @field_validator("timestampUTC", mode="before")
    @classmethod
    def parse_timestamp_utc(cls, v: Any) -> datetime:
        return _require_instant(v)


class Session(BaseModel):
    """One continuous tracked trip."""

    model_config = ConfigDict(extra="ignore")

    sessionId: str
    startTime: datetime
    endTime: datetime
    locations: list[LocationPoint] = Field(default_factory=list)
    name: str | None = None
    images: list[ImageRecord] = Field(default_factory=list)

    @field_validator("startTime", "endTime", mode="before")
    @classmethod
    def parse_datetime_fields(cls, v: Any) -> datetime:
        return _require_instant(v)


class DateBucket(BaseModel):
    sessions: list[Session] = Field(default_factory=list)


class RouteDocument(Document):
    """All sessions of one user, keyed by business-day date."""

    user: Indexed(str, unique=True)
    dates: dict[str, DateBucket] = Field(default_factory=dict)

    def find_session(self, session_id: str) -> tuple[str, Session] | None:
        """Locate a session by id across every date bucket."""
        for date_key, bucket in self.dates.items():
            for session in bucket.sessions:
                if session.sessionId == session_id:
                    return date_key, session
        return None

    def sorted_date_keys(self) -> list[str]:
        return sorted(self.dates)

    class Settings:
        name = "routes"

    class Config:
        extra = "allow"


ALL_DOCUMENT_MODELS = [RouteDocument]
