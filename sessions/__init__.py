"""
Driver session tracking package.

- api/: endpoint handlers for sync, session queries and route views
- services/: session storage and route reconstruction
- models.py: request and response models
"""

from fastapi import APIRouter

from sessions.api import reconstruction, sessions, sync

router = APIRouter()

# Fixed paths such as /api/routes/osrm/route and /api/routes/{user_id}/dates
# must register before the /api/routes/{user_id}/{date} catch-all.
router.include_router(sync.router, tags=["routes-sync"])
router.include_router(reconstruction.router, tags=["routes-view"])
router.include_router(sessions.router, tags=["routes-sessions"])

__all__ = ["router"]
