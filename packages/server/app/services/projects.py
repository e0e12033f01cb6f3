"""
Project service: the lifecycle state machine and its provider side effects.

Handles:
- Project CRUD (create, read, list, update, duplicate, archive-then-delete)
- Lifecycle events validated against PROJECT_TRANSITIONS
- Deployment start, completion reports and status refresh
- Model test predictions and NO_CODE page rendering

Every mutation goes through ``ProjectRepository.update`` guarded by the
project's ``updated_at``, together with an audit entry.
"""

from __future__ import annotations

import math
import uuid
from typing import Any, Optional

import structlog

from app.core.errors import AdapterError, Conflict, InvalidTransition, NotFound, ValidationError
from app.integrations import Integrations
from app.integrations.base import DeploymentArtifact
from app.models.base import utcnow
from app.repositories.projects import EventEntry, PageRequest, ProjectFilters, ProjectRepository
from app.services.pages import render_page
from app.services.validation import (
    validate_deployment_request,
    validate_model_config,
    validate_page_content,
    validate_revenue_config,
)
from aisp_shared.schemas.common import (
    DeploymentState,
    Locale,
    Pagination,
    ProjectEvent,
    ProjectStatus,
    ProjectType,
)
from aisp_shared.schemas.configs import DeploymentConfig, PageContent, RevenueConfig
from aisp_shared.schemas.projects import (
    DeploymentOutcome,
    ModelTestResult,
    PendingDeployment,
    ProjectCreate,
    ProjectDuplicate,
    ProjectList,
    ProjectRead,
    ProjectUpdate,
    next_status,
    validate_transition,
)

log = structlog.get_logger()

# Only reachable through report_deployment_result
_REPORTED_EVENTS = {ProjectEvent.DEPLOYMENT_SUCCEEDED, ProjectEvent.DEPLOYMENT_FAILED}

ARCHIVED_BUILD_ERROR = "Project archived before the deployment finished"


class ProjectService:
    def __init__(
        self,
        repository: ProjectRepository,
        integrations: Integrations,
        *,
        default_locale: Locale = Locale.EN,
    ):
        self.repository = repository
        self.integrations = integrations
        self.default_locale = Locale(default_locale)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _check(self, project: ProjectRead, event: ProjectEvent) -> ProjectStatus:
        ok, message = validate_transition(
            project.status,
            event,
            project_type=project.project_type,
            has_ai_model=project.ai_model is not None,
            deployment_pending=(
                project.deployment is not None
                and project.deployment.state == DeploymentState.PENDING
            ),
        )
        if not ok:
            raise InvalidTransition(
                message, details={"status": project.status.value, "event": event.value}
            )
        return next_status(project.status, event)

    async def _commit(
        self,
        project: ProjectRead,
        event: str,
        to_status: ProjectStatus,
        patch: dict[str, Any],
        actor_id: Optional[uuid.UUID],
        audit: Optional[dict[str, Any]] = None,
    ) -> ProjectRead:
        if to_status != project.status:
            patch = {**patch, "status": to_status}
        updated = await self.repository.update(
            project.id,
            project.updated_at,
            patch,
            EventEntry(
                event=event,
                from_status=project.status.value,
                to_status=to_status.value,
                actor_id=actor_id,
                payload=audit or {},
            ),
        )
        log.info(
            "project.transitioned",
            project_id=str(project.id),
            transition=event,
            from_status=project.status.value,
            to_status=to_status.value,
        )
        return updated

    async def _ensure_name_free(
        self, owner_id: uuid.UUID, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        if await self.repository.exists_with_name(owner_id, name, exclude_id=exclude_id):
            raise Conflict("Project with this name already exists", details={"name": name})

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    async def create_project(self, owner_id: uuid.UUID, data: ProjectCreate) -> ProjectRead:
        await self._ensure_name_free(owner_id, data.name)
        now = utcnow()
        project = await self.repository.create(
            ProjectRead(
                id=uuid.uuid4(),
                owner_id=owner_id,
                name=data.name,
                description=data.description,
                category=data.category,
                status=ProjectStatus.DRAFT,
                project_type=data.project_type,
                template_id=data.template_id,
                created_at=now,
                updated_at=now,
            )
        )
        log.info("project.created", project_id=str(project.id), owner_id=str(owner_id))
        return project

    async def get_project(
        self, project_id: uuid.UUID, owner_id: Optional[uuid.UUID] = None
    ) -> ProjectRead:
        project = await self.repository.get(project_id)
        if project is None or (owner_id is not None and project.owner_id != owner_id):
            raise NotFound("Project")
        return project

    async def list_projects(
        self,
        owner_id: uuid.UUID,
        filters: Optional[ProjectFilters] = None,
        page: Optional[PageRequest] = None,
    ) -> ProjectList:
        filters = filters or ProjectFilters()
        page = page or PageRequest()
        items, total = await self.repository.list_by_owner(owner_id, filters, page)
        return ProjectList(
            items=items,
            pagination=Pagination(
                page=page.page,
                per_page=page.per_page,
                total=total,
                total_pages=math.ceil(total / page.per_page) if page.per_page else 0,
            ),
        )

    async def update_project(
        self, project_id: uuid.UUID, owner_id: uuid.UUID, data: ProjectUpdate
    ) -> ProjectRead:
        project = await self.get_project(project_id, owner_id)
        if project.status == ProjectStatus.ARCHIVED:
            raise InvalidTransition(
                "Archived projects cannot be edited; restore the project first",
                details={"status": project.status.value},
            )

        patch = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if "name" in patch:
            patch["name"] = patch["name"].strip()
            if not patch["name"]:
                raise ValidationError("Project name must not be blank")
            if patch["name"] != project.name:
                await self._ensure_name_free(owner_id, patch["name"], exclude_id=project.id)
        if not patch:
            return project

        return await self._commit(
            project, "updated", project.status, patch, owner_id, {"fields": sorted(patch)}
        )

    async def duplicate_project(
        self, project_id: uuid.UUID, owner_id: uuid.UUID, data: Optional[ProjectDuplicate] = None
    ) -> ProjectRead:
        source = await self.get_project(project_id, owner_id)
        name = (data.name.strip() if data and data.name else "") or f"{source.name} (Copy)"
        await self._ensure_name_free(owner_id, name)

        now = utcnow()
        revenue = source.revenue.model_copy(update={"last_error": None}) if source.revenue else None
        copy = await self.repository.create(
            source.model_copy(
                update={
                    "id": uuid.uuid4(),
                    "name": name,
                    "status": ProjectStatus.DRAFT,
                    "deployment": None,
                    "revenue": revenue,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        )
        log.info("project.duplicated", project_id=str(copy.id), source_id=str(source.id))
        return copy

    async def project_history(
        self, project_id: uuid.UUID, owner_id: uuid.UUID
    ) -> list[EventEntry]:
        project = await self.get_project(project_id, owner_id)
        return await self.repository.list_events(project.id)

    async def delete_project(
        self, project_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Optional[ProjectRead]:
        """Archive a live project; physically delete an archived one.

        Returns the archived project, or None once it is gone.
        """
        project = await self.get_project(project_id, owner_id)
        if project.status != ProjectStatus.ARCHIVED:
            return await self.apply_event(project.id, ProjectEvent.ARCHIVE, {}, owner_id)
        await self.repository.delete(project.id)
        log.info("project.deleted", project_id=str(project.id))
        return None

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def apply_event(
        self,
        project_id: uuid.UUID,
        event: ProjectEvent,
        payload: Optional[dict[str, Any]],
        owner_id: uuid.UUID,
    ) -> ProjectRead:
        event = ProjectEvent(event)
        payload = dict(payload or {})
        project = await self.get_project(project_id, owner_id)

        if event in _REPORTED_EVENTS:
            raise InvalidTransition(
                f"'{event.value}' is reported by the deployment provider, not applied directly",
                details={"status": project.status.value, "event": event.value},
            )
        to_status = self._check(project, event)

        if event == ProjectEvent.ATTACH_AI_MODEL:
            config = validate_model_config(payload)
            await self.integrations.models.validate_model(config)
            return await self._commit(
                project, event.value, to_status, {"ai_model": config}, owner_id,
                {"type": config.type, "model_id": config.model_id},
            )

        if event == ProjectEvent.DETACH_AI_MODEL:
            return await self._commit(project, event.value, to_status, {"ai_model": None}, owner_id)

        if event == ProjectEvent.ATTACH_REVENUE_CONFIG:
            return await self._attach_revenue(project, to_status, payload, owner_id)

        if event == ProjectEvent.UPDATE_PAGE_CONTENT:
            content = validate_page_content(payload)
            return await self._commit(
                project, event.value, to_status, {"page_content": content}, owner_id
            )

        if event in (ProjectEvent.START_DEPLOYMENT, ProjectEvent.REDEPLOY):
            return await self._start_deployment(project, event, to_status, payload, owner_id)

        if event == ProjectEvent.ARCHIVE:
            return await self._archive(project, to_status, owner_id)

        # begin_development, restore
        return await self._commit(project, event.value, to_status, {}, owner_id)

    async def _archive(
        self, project: ProjectRead, to_status: ProjectStatus, owner_id: uuid.UUID
    ) -> ProjectRead:
        deployment = project.deployment
        if deployment is None or deployment.state != DeploymentState.PENDING:
            return await self._commit(project, ProjectEvent.ARCHIVE.value, to_status, {}, owner_id)
        # reports for a build of an archived project are never accepted
        settled = deployment.model_copy(
            update={"state": DeploymentState.FAILED, "last_error": ARCHIVED_BUILD_ERROR}
        )
        log.info(
            "deployment.abandoned",
            project_id=str(project.id),
            deployment_id=deployment.deployment_id,
        )
        return await self._commit(
            project, ProjectEvent.ARCHIVE.value, to_status, {"deployment": settled}, owner_id,
            {"abandoned_deployment_id": deployment.deployment_id},
        )

    async def _attach_revenue(
        self,
        project: ProjectRead,
        to_status: ProjectStatus,
        payload: dict[str, Any],
        owner_id: uuid.UUID,
    ) -> ProjectRead:
        revenue = validate_revenue_config(payload)
        if revenue.adsense_enabled:
            try:
                await self.integrations.revenue.verify_publisher_id(revenue.adsense_publisher_id)
            except AdapterError as exc:
                current = project.revenue or RevenueConfig()
                await self._commit(
                    project,
                    "attach_revenue_config_failed",
                    project.status,
                    {"revenue": current.model_copy(update={"last_error": exc.reason})},
                    owner_id,
                    {"provider": exc.provider, "reason": exc.reason},
                )
                raise
        return await self._commit(
            project,
            ProjectEvent.ATTACH_REVENUE_CONFIG.value,
            to_status,
            {"revenue": revenue.model_copy(update={"last_error": None})},
            owner_id,
            {"adsense_enabled": revenue.adsense_enabled, "ad_units": len(revenue.ad_units)},
        )

    def _deployment_config(
        self, project: ProjectRead, payload: dict[str, Any]
    ) -> DeploymentConfig:
        previous = project.deployment
        if previous is not None:
            payload.setdefault("platform", previous.platform.value)
            payload.setdefault("repository_url", previous.repository_url)
        request = validate_deployment_request(payload)

        same_target = previous is not None and previous.platform == request.platform
        carried: dict[str, Any] = {}
        if same_target:
            carried = {
                "deployment_url": previous.deployment_url,
                "last_deployed_at": previous.last_deployed_at,
                "provider_project_id": previous.provider_project_id,
                "provider_project_name": previous.provider_project_name,
                "domains": previous.domains,
            }
        if request.provider_project_name:
            carried["provider_project_name"] = request.provider_project_name
        return DeploymentConfig(
            platform=request.platform,
            repository_url=request.repository_url,
            state=DeploymentState.PENDING,
            started_at=utcnow(),
            **carried,
        )

    async def _start_deployment(
        self,
        project: ProjectRead,
        event: ProjectEvent,
        to_status: ProjectStatus,
        payload: dict[str, Any],
        owner_id: uuid.UUID,
    ) -> ProjectRead:
        try:
            locale = Locale(payload.pop("locale", self.default_locale))
        except ValueError as exc:
            raise ValidationError(
                "Unsupported locale", details={"supported": [l.value for l in Locale]}
            ) from exc
        config = self._deployment_config(project, payload)

        html = None
        if project.project_type == ProjectType.NO_CODE:
            html = render_page(project.page_content or PageContent(), locale)
        artifact = DeploymentArtifact(
            project_id=project.id,
            project_name=project.name,
            repository_url=config.repository_url,
            html=html,
        )

        try:
            handle = await self.integrations.deployments.start_deployment(config, artifact)
        except AdapterError as exc:
            # an earlier deployment (and any live URL) stays as it was
            if project.deployment is not None:
                failed = project.deployment.model_copy(update={"last_error": exc.reason})
            else:
                failed = config.model_copy(
                    update={"state": DeploymentState.FAILED, "last_error": exc.reason}
                )
            await self._commit(
                project,
                f"{event.value}_failed",
                project.status,
                {"deployment": failed},
                owner_id,
                {"provider": exc.provider, "reason": exc.reason},
            )
            raise

        started = config.model_copy(
            update={
                "deployment_id": handle.deployment_id,
                "provider_project_id": handle.provider_project_id or config.provider_project_id,
                "provider_project_name": handle.provider_project_name or config.provider_project_name,
                "domains": handle.domains or config.domains,
                "last_error": None,
            }
        )
        return await self._commit(
            project, event.value, to_status, {"deployment": started}, owner_id,
            {"deployment_id": handle.deployment_id, "platform": config.platform.value},
        )

    # -----------------------------------------------------------------------
    # Deployment completion
    # -----------------------------------------------------------------------

    async def report_deployment_result(
        self, project_id: uuid.UUID, deployment_id: str, outcome: DeploymentOutcome
    ) -> ProjectRead:
        """Apply a finished build. Repeating the same report is a no-op."""
        if outcome.deployment_id != deployment_id:
            raise ValidationError(
                "Outcome belongs to a different deployment",
                details={"deployment_id": deployment_id, "outcome": outcome.deployment_id},
            )
        project = await self.get_project(project_id)
        deployment = project.deployment
        if deployment is None or deployment.deployment_id != deployment_id:
            log.info(
                "deployment.stale_result",
                project_id=str(project_id),
                deployment_id=deployment_id,
                current=deployment.deployment_id if deployment else None,
            )
            return project

        target = DeploymentState.SUCCEEDED if outcome.success else DeploymentState.FAILED
        if deployment.state != DeploymentState.PENDING:
            if deployment.state != target:
                log.warning(
                    "deployment.conflicting_result",
                    project_id=str(project_id),
                    deployment_id=deployment_id,
                    state=deployment.state.value,
                    reported=target.value,
                )
            return project

        if outcome.success:
            event = ProjectEvent.DEPLOYMENT_SUCCEEDED
            resolved = deployment.model_copy(
                update={
                    "state": DeploymentState.SUCCEEDED,
                    "deployment_url": outcome.url,
                    "last_deployed_at": utcnow(),
                    "last_error": None,
                }
            )
        else:
            event = ProjectEvent.DEPLOYMENT_FAILED
            resolved = deployment.model_copy(
                update={
                    "state": DeploymentState.FAILED,
                    "last_error": outcome.error_detail or "Deployment failed",
                }
            )
        to_status = self._check(project, event)

        updated = await self._commit(
            project, event.value, to_status, {"deployment": resolved}, None,
            {"deployment_id": deployment_id, "url": outcome.url, "error": outcome.error_detail},
        )
        log.info(
            "deployment.reported",
            project_id=str(project_id),
            deployment_id=deployment_id,
            success=outcome.success,
        )
        return updated

    async def refresh_deployment(
        self, project_id: uuid.UUID, owner_id: Optional[uuid.UUID] = None
    ) -> ProjectRead:
        """Ask the provider about a pending build and apply it once it has finished."""
        project = await self.get_project(project_id, owner_id)
        deployment = project.deployment
        if deployment is None or deployment.state != DeploymentState.PENDING:
            return project

        outcome = await self.integrations.deployments.get_deployment_status(deployment)
        if outcome is None:
            return project
        return await self.report_deployment_result(project.id, deployment.deployment_id, outcome)

    async def list_pending_deployments(self, limit: int = 50) -> list[PendingDeployment]:
        projects = await self.repository.list_pending_deployments(limit)
        return [
            PendingDeployment(
                project_id=p.id,
                deployment_id=p.deployment.deployment_id,
                platform=p.deployment.platform,
                started_at=p.deployment.started_at,
            )
            for p in projects
            if p.deployment is not None and p.deployment.deployment_id
        ]

    # -----------------------------------------------------------------------
    # Models and pages
    # -----------------------------------------------------------------------

    async def test_model(
        self, project_id: uuid.UUID, owner_id: uuid.UUID, sample_input: Any
    ) -> ModelTestResult:
        project = await self.get_project(project_id, owner_id)
        if project.ai_model is None:
            raise InvalidTransition(
                "Attach an AI model before testing it",
                details={"status": project.status.value},
            )
        predictions = await self.integrations.models.predict(project.ai_model, sample_input)
        return ModelTestResult(model_id=project.ai_model.model_id, predictions=predictions)

    def render_page_content(self, content: Any, locale: Optional[Locale] = None) -> str:
        if not isinstance(content, PageContent):
            content = validate_page_content(content or {})
        return render_page(content, Locale(locale or self.default_locale))

    async def render_project_page(
        self, project_id: uuid.UUID, owner_id: uuid.UUID, locale: Optional[Locale] = None
    ) -> str:
        project = await self.get_project(project_id, owner_id)
        if project.project_type != ProjectType.NO_CODE:
            raise InvalidTransition(
                "Only NO_CODE projects have a generated page",
                details={"project_type": project.project_type.value},
            )
        return self.render_page_content(project.page_content or PageContent(), locale)
