"""
API v1 Router

Owner endpoints are scoped to the authenticated user; /deployments is for the watcher.
"""

from fastapi import APIRouter
from . import deployments, pages, projects

router = APIRouter()

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(pages.router, prefix="/pages", tags=["Pages"])
router.include_router(deployments.router, prefix="/deployments", tags=["Deployments"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/projects",
            "/projects/{project_id}/events",
            "/projects/{project_id}/ai-model/test",
            "/projects/{project_id}/page",
            "/pages/render",
            "/deployments/pending",
        ],
    }
