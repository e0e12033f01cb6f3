"""
Deployment endpoints used by the deployment watcher.

All routes require the watcher's bearer token, not an owner session.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_project_service
from app.core.auth import require_watcher
from app.services.projects import ProjectService
from aisp_shared.schemas.projects import DeploymentOutcome, PendingDeployment, ProjectRead

router = APIRouter(dependencies=[Depends(require_watcher)])


@router.get("/pending", response_model=List[PendingDeployment])
async def list_pending_deployments(
    limit: int = Query(50, ge=1, le=500),
    service: ProjectService = Depends(get_project_service),
):
    return await service.list_pending_deployments(limit)


@router.post("/{project_id}/refresh", response_model=ProjectRead)
async def refresh_deployment(
    project_id: uuid.UUID,
    service: ProjectService = Depends(get_project_service),
):
    """Poll the provider for a pending build and apply its outcome if finished."""
    return await service.refresh_deployment(project_id)


@router.post("/{project_id}/result", response_model=ProjectRead)
async def report_deployment_result(
    project_id: uuid.UUID,
    outcome: DeploymentOutcome,
    service: ProjectService = Depends(get_project_service),
):
    """Completion notice for a build; repeating the same notice changes nothing."""
    return await service.report_deployment_result(project_id, outcome.deployment_id, outcome)
