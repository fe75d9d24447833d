"""API routes for rendering session routes and proxying OSRM routing."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from core.api import api_route
from sessions.api.deps import get_identity, require_identity, resolve_owner
from sessions.models import Identity
from sessions.services.route_reconstruction import RouteReconstructionService
from sessions.services.session_store import SessionStoreService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_reconstruction_service() -> RouteReconstructionService:
    return RouteReconstructionService()


ReconstructionService = Annotated[
    RouteReconstructionService,
    Depends(get_reconstruction_service),
]
CallerIdentity = Annotated[Identity | None, Depends(get_identity)]


@router.get("/api/routes/osrm/route", response_model=dict)
@api_route(logger)
async def osrm_route(
    identity: CallerIdentity,
    service: ReconstructionService,
    coords: Annotated[str, Query(description="lon,lat;lon,lat;...")] = "",
):
    """Driving route between points, with a haversine estimate on failure."""
    require_identity(identity)
    return await service.route_between(coords)


@router.get("/api/routes/{user_id}/session/{session_id}/route", response_model=dict)
@api_route(logger)
async def session_route(
    user_id: str,
    session_id: str,
    identity: CallerIdentity,
    service: ReconstructionService,
):
    """Reconstructed route and image markers for one session."""
    owner_id = resolve_owner(identity, user_id)
    date, session = await SessionStoreService.get_session(owner_id, session_id)
    return await service.session_route_view(date, session)
