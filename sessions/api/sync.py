"""API route for driver location sync."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from core.api import api_route
from sessions.api.deps import get_identity, resolve_owner
from sessions.models import Identity, SyncRequest
from sessions.services.session_store import SessionStoreService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/routes/sync", response_model=dict)
@api_route(logger)
async def sync_route(
    payload: SyncRequest,
    identity: Annotated[Identity | None, Depends(get_identity)],
):
    """Store a batch of locations for the caller (or, for superadmins, userId)."""
    owner_id = resolve_owner(identity, payload.userId)
    result = await SessionStoreService.sync_batch(
        owner_id,
        payload.route,
        session_id=payload.sessionId,
        trip_name=payload.tripName,
    )
    return {"msg": "Route data synced successfully", **result}
