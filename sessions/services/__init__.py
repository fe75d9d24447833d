"""Session storage and route reconstruction services."""

from sessions.services.route_reconstruction import RouteReconstructionService
from sessions.services.session_store import SessionStoreService

__all__ = ["RouteReconstructionService", "SessionStoreService"]
