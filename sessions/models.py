"""Pydantic models for session API requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from core.constants import ROLE_SUPERADMIN
from core.date_utils import coerce_instant
from db.models import ImageType

ConfidenceLevel = Literal["strong", "medium", "weak"]
ReconstructionState = Literal["raw", "matched", "fallback"]
FallbackReason = Literal["insufficient_points", "no_match", "service_error", "timeout"]


def _optional_instant(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    instant = coerce_instant(value)
    if instant is None:
        msg = f"Unrecognized timestamp value: {value!r}"
        raise ValueError(msg)
    return instant


class LocationIn(BaseModel):
    """One GPS fix as submitted by the driver app."""

    model_config = ConfigDict(extra="ignore")

    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    timestamp: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "timestampUTC"),
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> datetime | None:
        return _optional_instant(v)


class GeoPointIn(BaseModel):
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)


class SyncRequest(BaseModel):
    """Body of ``POST /api/routes/sync``.

    ``userId`` lets a superadmin store the batch under another driver.
    """

    model_config = ConfigDict(extra="ignore")

    route: list[LocationIn] = Field(default_factory=list)
    sessionId: str | None = None
    tripName: str | None = None
    userId: str | None = None


class SessionCreateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sessionId: str | None = None
    date: str | None = None
    startTime: datetime
    endTime: datetime
    locations: list[LocationIn] = Field(default_factory=list)
    name: str | None = None

    @field_validator("startTime", "endTime", mode="before")
    @classmethod
    def parse_times(cls, v: Any) -> datetime:
        instant = _optional_instant(v)
        if instant is None:
            msg = "startTime and endTime are required"
            raise ValueError(msg)
        return instant


class SessionRenameRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class ImageCreateRequest(BaseModel):
    """Metadata for an image already stored by the upload layer."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    url: str = Field(min_length=1)
    thumbnailUrl: str | None = None
    type: ImageType
    timestamp: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "timestampUTC"),
    )
    location: GeoPointIn | None = None
    description: str | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> datetime | None:
        return _optional_instant(v)


class ReconstructedRoute(BaseModel):
    """Display-ready route for one session; polyline vertices are ``[lat, lon]``."""

    polyline: list[tuple[float, float]]
    distanceMeters: float
    confidence: float
    confidenceLevel: ConfidenceLevel
    usedFallback: bool
    state: ReconstructionState
    # insufficient_points is a data problem; the others are service failures
    fallbackReason: FallbackReason | None = None


class Identity(BaseModel):
    """Caller identity forwarded by the auth gateway."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: str | None = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == ROLE_SUPERADMIN
