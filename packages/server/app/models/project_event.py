"""Project event model (append-only audit trail of lifecycle events)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, utcnow


class ProjectEventRecord(SQLModel, table=True):
    __tablename__ = "project_events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    project_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    event: str = Field(nullable=False)  # e.g. begin_development, deployment_succeeded
    from_status: str = Field(nullable=False)
    to_status: str = Field(nullable=False)
    actor_id: Optional[uuid.UUID] = None  # None for adapter/watcher reports
    payload: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
