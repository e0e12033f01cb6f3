"""
Stateless page rendering for the no-code editor preview.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from app.api.deps import get_project_service
from app.core.auth import AuthenticatedUser, get_authenticated_user
from app.services.projects import ProjectService
from aisp_shared.schemas.projects import PageRenderRequest

router = APIRouter()


@router.post("/render", response_class=HTMLResponse)
async def render_page(
    body: PageRenderRequest,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    return HTMLResponse(service.render_page_content(body.content, body.locale))
