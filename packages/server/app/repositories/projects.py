"""
Project persistence.

``ProjectRepository`` is the narrow contract the project service depends on.
``SqlProjectRepository`` implements it on SQLModel tables. Every write runs in
its own transaction and updates are guarded by ``(id, updated_at)`` so a
stale writer fails with ConcurrentModification instead of overwriting.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol

import structlog
from pydantic import BaseModel
from sqlalchemy import delete, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConcurrentModification, Conflict, NotFound
from app.models.base import utcnow
from app.models.project import Project
from app.models.project_event import ProjectEventRecord
from aisp_shared.schemas.common import DeploymentState, ProjectStatus
from aisp_shared.schemas.projects import ProjectRead

log = structlog.get_logger()

_TIMESTAMPS = ("created_at", "updated_at")


@dataclass
class ProjectFilters:
    status: Optional[ProjectStatus] = None
    category: Optional[str] = None
    search: Optional[str] = None


@dataclass
class PageRequest:
    page: int = 1
    per_page: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


@dataclass
class EventEntry:
    """Audit record written in the same transaction as a project update."""

    event: str
    from_status: str
    to_status: str
    actor_id: Optional[uuid.UUID] = None
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


class ProjectRepository(Protocol):
    async def create(self, project: ProjectRead) -> ProjectRead: ...

    async def get(self, project_id: uuid.UUID) -> Optional[ProjectRead]: ...

    async def update(
        self,
        project_id: uuid.UUID,
        expected_updated_at: datetime,
        patch: dict[str, Any],
        event: Optional[EventEntry] = None,
    ) -> ProjectRead: ...

    async def delete(self, project_id: uuid.UUID) -> None: ...

    async def list_by_owner(
        self, owner_id: uuid.UUID, filters: ProjectFilters, page: PageRequest
    ) -> tuple[list[ProjectRead], int]: ...

    async def exists_with_name(
        self, owner_id: uuid.UUID, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> bool: ...

    async def list_pending_deployments(self, limit: int = 50) -> list[ProjectRead]: ...

    async def list_events(self, project_id: uuid.UUID) -> list[EventEntry]: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def next_timestamp(previous: datetime) -> datetime:
    """A fresh updated_at that is strictly later than ``previous``."""
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    now = utcnow()
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    return value


def patch_to_columns(patch: dict[str, Any]) -> dict[str, Any]:
    """Translate a domain patch into column values, keeping the deployment mirrors in sync."""
    values = {key: _dump(value) for key, value in patch.items()}
    if "deployment" in values:
        deployment = values["deployment"] or {}
        values["deployment_id"] = deployment.get("deployment_id")
        values["deployment_state"] = deployment.get("state")
    return values


def row_to_read(row: Project) -> ProjectRead:
    return ProjectRead.model_validate(
        {
            "id": row.id,
            "owner_id": row.owner_id,
            "name": row.name,
            "description": row.description,
            "category": row.category,
            "status": row.status,
            "project_type": row.project_type,
            "template_id": row.template_id,
            "ai_model": row.ai_model,
            "deployment": row.deployment,
            "revenue": row.revenue,
            "page_content": row.page_content,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


# ---------------------------------------------------------------------------
# SQL implementation
# ---------------------------------------------------------------------------


class SqlProjectRepository:
    """ProjectRepository backed by the ``projects`` and ``project_events`` tables."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def create(self, project: ProjectRead) -> ProjectRead:
        columns = patch_to_columns(
            {name: getattr(project, name) for name in ProjectRead.model_fields if name not in _TIMESTAMPS}
        )
        row = Project(**columns, created_at=project.created_at, updated_at=project.updated_at)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                    session.add(
                        ProjectEventRecord(
                            project_id=row.id,
                            event="created",
                            from_status=row.status,
                            to_status=row.status,
                            actor_id=row.owner_id,
                        )
                    )
                    await session.flush()
                await session.refresh(row)
                return row_to_read(row)
        except IntegrityError as exc:
            raise Conflict("Project with this name already exists") from exc

    async def get(self, project_id: uuid.UUID) -> Optional[ProjectRead]:
        async with self._session_factory() as session:
            row = await session.get(Project, project_id)
            return row_to_read(row) if row else None

    async def update(
        self,
        project_id: uuid.UUID,
        expected_updated_at: datetime,
        patch: dict[str, Any],
        event: Optional[EventEntry] = None,
    ) -> ProjectRead:
        values = patch_to_columns(patch)
        values["updated_at"] = next_timestamp(expected_updated_at)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(Project)
                        .where(
                            Project.id == project_id,
                            Project.updated_at == expected_updated_at,
                        )
                        .values(**values)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 0:
                        if await session.get(Project, project_id) is None:
                            raise NotFound("Project")
                        log.info("project.update_conflict", project_id=str(project_id))
                        raise ConcurrentModification(details={"project_id": str(project_id)})

                    if event is not None:
                        session.add(
                            ProjectEventRecord(
                                project_id=project_id,
                                event=event.event,
                                from_status=event.from_status,
                                to_status=event.to_status,
                                actor_id=event.actor_id,
                                payload=event.payload,
                            )
                        )
                    row = await session.get(Project, project_id, populate_existing=True)
                    return row_to_read(row)
        except IntegrityError as exc:
            raise Conflict("Project with this name already exists") from exc

    async def delete(self, project_id: uuid.UUID) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(ProjectEventRecord).where(ProjectEventRecord.project_id == project_id)
                )
                result = await session.execute(delete(Project).where(Project.id == project_id))
                if result.rowcount == 0:
                    raise NotFound("Project")

    async def list_by_owner(
        self, owner_id: uuid.UUID, filters: ProjectFilters, page: PageRequest
    ) -> tuple[list[ProjectRead], int]:
        conditions = [Project.owner_id == owner_id]
        if filters.status:
            conditions.append(Project.status == filters.status.value)
        if filters.category:
            conditions.append(Project.category == filters.category)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(Project.name.ilike(pattern), Project.description.ilike(pattern))
            )

        async with self._session_factory() as session:
            total = (
                await session.execute(select(func.count()).select_from(Project).where(*conditions))
            ).scalar_one()
            result = await session.execute(
                select(Project)
                .where(*conditions)
                .order_by(Project.updated_at.desc())
                .offset(page.offset)
                .limit(page.per_page)
            )
            return [row_to_read(r) for r in result.scalars().all()], total

    async def exists_with_name(
        self, owner_id: uuid.UUID, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> bool:
        stmt = select(Project.id).where(Project.owner_id == owner_id, Project.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Project.id != exclude_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt.limit(1))
            return result.first() is not None

    async def list_pending_deployments(self, limit: int = 50) -> list[ProjectRead]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Project)
                .where(Project.deployment_state == DeploymentState.PENDING.value)
                .order_by(Project.updated_at.asc())
                .limit(limit)
            )
            return [row_to_read(r) for r in result.scalars().all()]

    async def list_events(self, project_id: uuid.UUID) -> list[EventEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProjectEventRecord)
                .where(ProjectEventRecord.project_id == project_id)
                .order_by(ProjectEventRecord.created_at.asc())
            )
            return [
                EventEntry(
                    event=r.event,
                    from_status=r.from_status,
                    to_status=r.to_status,
                    actor_id=r.actor_id,
                    payload=r.payload or {},
                    created_at=r.created_at,
                )
                for r in result.scalars().all()
            ]
