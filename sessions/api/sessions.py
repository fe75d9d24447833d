"""API routes for querying and editing stored sessions."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from core.api import api_route
from sessions.api.deps import get_identity, resolve_owner
from sessions.models import (
    Identity,
    ImageCreateRequest,
    LocationIn,
    SessionCreateRequest,
    SessionRenameRequest,
)
from sessions.services.session_store import SessionStoreService

logger = logging.getLogger(__name__)
router = APIRouter()

CallerIdentity = Annotated[Identity | None, Depends(get_identity)]


@router.post("/api/routes/{user_id}/sessions", response_model=dict)
@api_route(logger)
async def create_session(
    user_id: str,
    payload: SessionCreateRequest,
    identity: CallerIdentity,
):
    """Create an empty (or pre-filled) session explicitly."""
    owner_id = resolve_owner(identity, user_id)
    result = await SessionStoreService.create_session(
        owner_id,
        session_id=payload.sessionId,
        date=payload.date,
        start_time=payload.startTime,
        end_time=payload.endTime,
        locations=payload.locations,
        name=payload.name,
    )
    return {"msg": "Session added", **result}


@router.post("/api/routes/{user_id}/{date}/{session_id}/location", response_model=dict)
@api_route(logger)
async def add_location(
    user_id: str,
    date: str,
    session_id: str,
    payload: LocationIn,
    identity: CallerIdentity,
):
    """Append a single location to a session."""
    owner_id = resolve_owner(identity, user_id)
    result = await SessionStoreService.add_location(owner_id, date, session_id, payload)
    return {"msg": "Location added", **result}


@router.get("/api/routes/{user_id}/dates", response_model=dict)
@api_route(logger)
async def list_dates(user_id: str, identity: CallerIdentity):
    """Dates with at least one session, ascending."""
    owner_id = resolve_owner(identity, user_id)
    return {"dates": await SessionStoreService.list_dates(owner_id)}


@router.get("/api/routes/{user_id}/session/{session_id}", response_model=dict)
@api_route(logger)
async def get_session(user_id: str, session_id: str, identity: CallerIdentity):
    owner_id = resolve_owner(identity, user_id)
    date, session = await SessionStoreService.get_session(owner_id, session_id)
    return {"date": date, "session": session.model_dump(mode="json")}


@router.patch("/api/routes/{user_id}/session/{session_id}", response_model=dict)
@api_route(logger)
async def rename_session(
    user_id: str,
    session_id: str,
    payload: SessionRenameRequest,
    identity: CallerIdentity,
):
    owner_id = resolve_owner(identity, user_id)
    return await SessionStoreService.rename_session(owner_id, session_id, payload.name)


@router.delete("/api/routes/{user_id}/session/{session_id}", response_model=dict)
@api_route(logger)
async def delete_session(user_id: str, session_id: str, identity: CallerIdentity):
    owner_id = resolve_owner(identity, user_id)
    result = await SessionStoreService.delete_session(owner_id, session_id)
    return {"msg": "Session deleted", **result}


@router.post("/api/routes/{user_id}/session/{session_id}/images", response_model=dict)
@api_route(logger)
async def add_image(
    user_id: str,
    session_id: str,
    payload: ImageCreateRequest,
    identity: CallerIdentity,
):
    """Attach metadata for an already uploaded image."""
    owner_id = resolve_owner(identity, user_id)
    record = await SessionStoreService.add_image(owner_id, session_id, payload)
    return {"image": record.model_dump(mode="json")}


@router.get("/api/routes/{user_id}/session/{session_id}/images", response_model=dict)
@api_route(logger)
async def list_images(user_id: str, session_id: str, identity: CallerIdentity):
    owner_id = resolve_owner(identity, user_id)
    images = await SessionStoreService.list_images(owner_id, session_id)
    return {"images": [image.model_dump(mode="json") for image in images]}


@router.get("/api/routes/{user_id}/{date}", response_model=dict)
@api_route(logger)
async def get_sessions_by_date(user_id: str, date: str, identity: CallerIdentity):
    """Sessions recorded on one business day."""
    owner_id = resolve_owner(identity, user_id)
    sessions = await SessionStoreService.get_sessions_by_date(owner_id, date)
    return {
        "date": date,
        "sessions": [session.model_dump(mode="json") for session in sessions],
    }
