"""
Shared fixtures: an in-memory repository, adapter doubles and a wired ProjectService.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_project_service
from app.core.auth import create_jwt
from app.core.config import get_settings
from app.core.errors import AdapterError, ConcurrentModification, Conflict, NotFound
from app.integrations import Integrations
from app.integrations.base import DeploymentArtifact, DeploymentHandle
from app.main import create_app
from app.repositories.projects import EventEntry, PageRequest, ProjectFilters, next_timestamp
from app.services.projects import ProjectService
from aisp_shared.schemas.common import DeploymentState
from aisp_shared.schemas.configs import DeploymentConfig
from aisp_shared.schemas.projects import DeploymentOutcome, Prediction, ProjectRead

WATCHER_TOKEN = "watcher-secret"


# ---------------------------------------------------------------------------
# Repository double
# ---------------------------------------------------------------------------


class InMemoryProjectRepository:
    """ProjectRepository with the same compare-and-swap rules as the SQL one."""

    def __init__(self) -> None:
        self.projects: dict[uuid.UUID, ProjectRead] = {}
        self.events: dict[uuid.UUID, list[EventEntry]] = {}
        self.update_calls = 0

    async def create(self, project: ProjectRead) -> ProjectRead:
        if await self.exists_with_name(project.owner_id, project.name):
            raise Conflict("Project with this name already exists")
        self.projects[project.id] = project
        self.events[project.id] = [
            EventEntry("created", project.status.value, project.status.value, project.owner_id)
        ]
        return project

    async def get(self, project_id: uuid.UUID) -> Optional[ProjectRead]:
        return self.projects.get(project_id)

    async def update(
        self,
        project_id: uuid.UUID,
        expected_updated_at: datetime,
        patch: dict[str, Any],
        event: Optional[EventEntry] = None,
    ) -> ProjectRead:
        self.update_calls += 1
        current = self.projects.get(project_id)
        if current is None:
            raise NotFound("Project")
        if current.updated_at != expected_updated_at:
            raise ConcurrentModification()
        updated = current.model_copy(
            update={**patch, "updated_at": next_timestamp(expected_updated_at)}
        )
        self.projects[project_id] = updated
        if event is not None:
            self.events[project_id].append(event)
        return updated

    async def delete(self, project_id: uuid.UUID) -> None:
        if self.projects.pop(project_id, None) is None:
            raise NotFound("Project")
        self.events.pop(project_id, None)

    async def list_by_owner(
        self, owner_id: uuid.UUID, filters: ProjectFilters, page: PageRequest
    ) -> tuple[list[ProjectRead], int]:
        items = [p for p in self.projects.values() if p.owner_id == owner_id]
        if filters.status:
            items = [p for p in items if p.status == filters.status]
        if filters.category:
            items = [p for p in items if p.category == filters.category]
        if filters.search:
            needle = filters.search.lower()
            items = [
                p for p in items
                if needle in p.name.lower() or needle in (p.description or "").lower()
            ]
        items.sort(key=lambda p: p.updated_at, reverse=True)
        return items[page.offset:page.offset + page.per_page], len(items)

    async def exists_with_name(
        self, owner_id: uuid.UUID, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> bool:
        return any(
            p.owner_id == owner_id and p.name == name and p.id != exclude_id
            for p in self.projects.values()
        )

    async def list_pending_deployments(self, limit: int = 50) -> list[ProjectRead]:
        pending = [
            p for p in self.projects.values()
            if p.deployment is not None and p.deployment.state == DeploymentState.PENDING
        ]
        return pending[:limit]

    async def list_events(self, project_id: uuid.UUID) -> list[EventEntry]:
        return list(self.events.get(project_id, []))


# ---------------------------------------------------------------------------
# Adapter doubles
# ---------------------------------------------------------------------------


class FakeModelAdapter:
    def __init__(self) -> None:
        self.validated: list[Any] = []
        self.error: Optional[AdapterError] = None
        self.predictions = [Prediction(label="cat", confidence=0.9), Prediction(label="dog", confidence=0.1)]

    async def validate_model(self, config) -> None:
        if self.error:
            raise self.error
        self.validated.append(config)

    async def predict(self, config, sample_input) -> list[Prediction]:
        if self.error:
            raise self.error
        return self.predictions


class FakeDeploymentAdapter:
    def __init__(self) -> None:
        self.started: list[tuple[DeploymentConfig, DeploymentArtifact]] = []
        self.error: Optional[AdapterError] = None
        self.outcomes: dict[str, Optional[DeploymentOutcome]] = {}
        self._counter = 0

    async def start_deployment(self, config, artifact) -> DeploymentHandle:
        if self.error:
            raise self.error
        self._counter += 1
        self.started.append((config, artifact))
        return DeploymentHandle(
            deployment_id=f"dep-{self._counter}",
            provider_project_id="cf-project",
            provider_project_name="demo",
            domains=["demo.pages.dev"],
        )

    async def get_deployment_status(self, config) -> Optional[DeploymentOutcome]:
        return self.outcomes.get(config.deployment_id)


class FakeRevenueAdapter:
    def __init__(self) -> None:
        self.verified: list[str] = []
        self.error: Optional[AdapterError] = None

    async def verify_publisher_id(self, publisher_id: str) -> None:
        if self.error:
            raise self.error
        self.verified.append(publisher_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repository() -> InMemoryProjectRepository:
    return InMemoryProjectRepository()


@pytest.fixture
def models() -> FakeModelAdapter:
    return FakeModelAdapter()


@pytest.fixture
def deployments() -> FakeDeploymentAdapter:
    return FakeDeploymentAdapter()


@pytest.fixture
def revenue() -> FakeRevenueAdapter:
    return FakeRevenueAdapter()


@pytest.fixture
def service(repository, models, deployments, revenue) -> ProjectService:
    return ProjectService(
        repository,
        Integrations(models=models, deployments=deployments, revenue=revenue),
    )


@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def watcher_token(monkeypatch):
    monkeypatch.setenv("AISP_WATCHER_TOKEN", WATCHER_TOKEN)
    get_settings.cache_clear()
    yield WATCHER_TOKEN
    get_settings.cache_clear()


@pytest.fixture
def app(service):
    application = create_app()
    application.dependency_overrides[get_project_service] = lambda: service
    return application


@pytest.fixture
async def client(app, owner_id):
    token, _ = create_jwt(owner_id)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as ac:
        yield ac
