"""Project model."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"
    __table_args__ = (
        sa.UniqueConstraint("owner_id", "name", name="uq_projects_owner_name"),
    )

    owner_id: uuid.UUID = Field(nullable=False, index=True)
    name: str = Field(nullable=False)
    description: Optional[str] = None
    category: str = Field(default="other", nullable=False)
    status: str = Field(default="draft", nullable=False, index=True)  # draft | developing | deployed | archived
    project_type: str = Field(default="LOW_CODE", nullable=False)  # LOW_CODE | NO_CODE
    template_id: Optional[uuid.UUID] = None
    ai_model: Optional[dict] = Field(default=None, sa_type=JSONType)
    deployment: Optional[dict] = Field(default=None, sa_type=JSONType)
    revenue: Optional[dict] = Field(default=None, sa_type=JSONType)
    page_content: Optional[dict] = Field(default=None, sa_type=JSONType)
    # Mirrors of deployment.deployment_id / deployment.state for the watcher's queries
    deployment_id: Optional[str] = Field(default=None, index=True)
    deployment_state: Optional[str] = Field(default=None, index=True)
