"""
Project endpoints: CRUD, lifecycle events, model tests and page preview.

Lifecycle: draft → developing → deployed, archive/restore from any live status.
- Events go through POST /{project_id}/events
- DELETE archives first; deleting an archived project removes it
"""

from __future__ import annotations

import uuid
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import HTMLResponse

from app.api.deps import get_project_service
from app.core.auth import AuthenticatedUser, get_authenticated_user
from app.repositories.projects import PageRequest, ProjectFilters
from app.services.projects import ProjectService
from aisp_shared.schemas.common import Locale, ProjectStatus
from aisp_shared.schemas.projects import (
    ModelTestRequest,
    ModelTestResult,
    ProjectCreate,
    ProjectDuplicate,
    ProjectEventRequest,
    ProjectList,
    ProjectRead,
    ProjectUpdate,
)

router = APIRouter()


@router.get("/", response_model=ProjectList)
async def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    """List the caller's projects, most recently updated first."""
    return await service.list_projects(
        auth.user_id,
        ProjectFilters(status=status_filter, category=category, search=search),
        PageRequest(page=page, per_page=per_page),
    )


@router.post("/", response_model=ProjectRead, status_code=201)
async def create_project(
    project_in: ProjectCreate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    return await service.create_project(auth.user_id, project_in)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    return await service.get_project(project_id, auth.user_id)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    return await service.update_project(project_id, auth.user_id, project_in)


@router.delete("/{project_id}", response_model=ProjectRead)
async def delete_project(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    """Archive a live project (200 with the project) or remove an archived one (204)."""
    archived = await service.delete_project(project_id, auth.user_id)
    if archived is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return archived


@router.post("/{project_id}/duplicate", response_model=ProjectRead, status_code=201)
async def duplicate_project(
    project_id: uuid.UUID,
    body: Optional[ProjectDuplicate] = None,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    return await service.duplicate_project(project_id, auth.user_id, body)


@router.post("/{project_id}/events", response_model=ProjectRead)
async def apply_event(
    project_id: uuid.UUID,
    body: ProjectEventRequest,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    """Apply a lifecycle event (begin_development, attach_ai_model, start_deployment, ...)."""
    return await service.apply_event(project_id, body.event, body.payload, auth.user_id)


@router.get("/{project_id}/events")
async def list_project_events(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    """Audit trail of the project, oldest first."""
    entries = await service.project_history(project_id, auth.user_id)
    return [asdict(e) for e in entries]


@router.post("/{project_id}/ai-model/test", response_model=ModelTestResult)
async def test_ai_model(
    project_id: uuid.UUID,
    body: ModelTestRequest,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    return await service.test_model(project_id, auth.user_id, body.sample_input)


@router.get("/{project_id}/page", response_class=HTMLResponse)
async def project_page(
    project_id: uuid.UUID,
    locale: Optional[Locale] = None,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    service: ProjectService = Depends(get_project_service),
):
    """Preview the static page a NO_CODE project deploys."""
    return HTMLResponse(await service.render_project_page(project_id, auth.user_id, locale))
