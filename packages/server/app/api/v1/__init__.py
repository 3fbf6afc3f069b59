"""
API v1 Router

Directory endpoints live under /users; organizations and their members under
/organizations.
"""

from fastapi import APIRouter
from . import organizations, users

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/users",
            "/users/search",
            "/users/stats",
            "/organizations",
            "/organizations/{orgId}/members",
        ],
    }
