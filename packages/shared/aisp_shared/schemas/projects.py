from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator
from uuid import UUID
from datetime import datetime
from .common import (
    DeploymentPlatform,
    Locale,
    Pagination,
    ProjectEvent,
    ProjectStatus,
    ProjectType,
)
from .configs import AIModelConfig, DeploymentConfig, PageContent, RevenueConfig, is_absolute_url


class ProjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: str = "other"


class ProjectCreate(ProjectBase):
    project_type: ProjectType = ProjectType.LOW_CODE
    template_id: Optional[UUID] = None

    @model_validator(mode="after")
    def _strip_name(self):
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("name must not be blank")
        return self


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None


class ProjectDuplicate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


class ProjectRead(ProjectBase):
    id: UUID
    owner_id: UUID
    status: ProjectStatus
    project_type: ProjectType
    template_id: Optional[UUID] = None
    ai_model: Optional[AIModelConfig] = None
    deployment: Optional[DeploymentConfig] = None
    revenue: Optional[RevenueConfig] = None
    page_content: Optional[PageContent] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectList(BaseModel):
    items: List[ProjectRead]
    pagination: Pagination


class ProjectEventRequest(BaseModel):
    """Request body for POST /projects/{projectId}/events."""
    event: ProjectEvent
    payload: Dict[str, Any] = Field(default_factory=dict)


class DeploymentOutcome(BaseModel):
    """Completion notice for a build, sent by an adapter or the watcher."""
    deployment_id: str = Field(min_length=1)
    success: bool
    url: Optional[str] = None
    error_detail: Optional[str] = None

    @model_validator(mode="after")
    def _success_needs_url(self):
        if self.success and not (self.url and is_absolute_url(self.url)):
            raise ValueError("a successful deployment must report an absolute url")
        return self


class PendingDeployment(BaseModel):
    project_id: UUID
    deployment_id: str
    platform: DeploymentPlatform
    started_at: Optional[datetime] = None


class Prediction(BaseModel):
    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class ModelTestRequest(BaseModel):
    sample_input: Any = None


class ModelTestResult(BaseModel):
    model_id: Optional[str] = None
    predictions: List[Prediction] = Field(default_factory=list)


class PageRenderRequest(BaseModel):
    content: PageContent = Field(default_factory=PageContent)
    locale: Locale = Locale.EN


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

_EDITABLE = (ProjectStatus.DRAFT, ProjectStatus.DEVELOPING, ProjectStatus.DEPLOYED)

# event -> {from status: to status}
PROJECT_TRANSITIONS: dict[ProjectEvent, dict[ProjectStatus, ProjectStatus]] = {
    ProjectEvent.BEGIN_DEVELOPMENT: {ProjectStatus.DRAFT: ProjectStatus.DEVELOPING},
    ProjectEvent.ATTACH_AI_MODEL: {ProjectStatus.DEVELOPING: ProjectStatus.DEVELOPING},
    ProjectEvent.DETACH_AI_MODEL: {
        ProjectStatus.DRAFT: ProjectStatus.DRAFT,
        ProjectStatus.DEVELOPING: ProjectStatus.DEVELOPING,
    },
    ProjectEvent.ATTACH_REVENUE_CONFIG: {s: s for s in _EDITABLE},
    ProjectEvent.UPDATE_PAGE_CONTENT: {s: s for s in _EDITABLE},
    ProjectEvent.START_DEPLOYMENT: {ProjectStatus.DEVELOPING: ProjectStatus.DEVELOPING},
    ProjectEvent.DEPLOYMENT_SUCCEEDED: {ProjectStatus.DEVELOPING: ProjectStatus.DEPLOYED},
    ProjectEvent.DEPLOYMENT_FAILED: {ProjectStatus.DEVELOPING: ProjectStatus.DEVELOPING},
    ProjectEvent.REDEPLOY: {ProjectStatus.DEPLOYED: ProjectStatus.DEVELOPING},
    ProjectEvent.ARCHIVE: {s: ProjectStatus.ARCHIVED for s in _EDITABLE},
    ProjectEvent.RESTORE: {ProjectStatus.ARCHIVED: ProjectStatus.DRAFT},
}

# Events that need a bound AI model before they may fire
_NEEDS_AI_MODEL = {
    ProjectEvent.START_DEPLOYMENT,
    ProjectEvent.DEPLOYMENT_SUCCEEDED,
    ProjectEvent.REDEPLOY,
}


def validate_transition(
    current: ProjectStatus,
    event: ProjectEvent,
    *,
    project_type: ProjectType = ProjectType.LOW_CODE,
    has_ai_model: bool = False,
    deployment_pending: bool = False,
) -> tuple[bool, str]:
    """Validate a project lifecycle event against the current status.

    Rules:
    - The event must have an edge leaving the current status.
    - update_page_content only applies to NO_CODE projects, whatever the status.
    - Deploying needs a bound AI model and no other build in flight.

    Returns (is_valid, error_message).
    """
    if event == ProjectEvent.UPDATE_PAGE_CONTENT and project_type != ProjectType.NO_CODE:
        return False, "Page content can only be edited on NO_CODE projects"

    edges = PROJECT_TRANSITIONS[event]
    if current not in edges:
        allowed = ", ".join(s.value for s in edges)
        return False, (
            f"Cannot apply '{event.value}' to a project in '{current.value}' status. "
            f"Allowed from: {allowed}"
        )

    if event in _NEEDS_AI_MODEL and not has_ai_model:
        return False, f"'{event.value}' requires an attached AI model"

    if event in (ProjectEvent.START_DEPLOYMENT, ProjectEvent.REDEPLOY) and deployment_pending:
        return False, "A deployment is already in progress for this project"

    return True, ""


def next_status(current: ProjectStatus, event: ProjectEvent) -> ProjectStatus:
    """Target status of a validated event."""
    return PROJECT_TRANSITIONS[event][current]
