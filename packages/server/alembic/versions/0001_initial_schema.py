"""Projects and the project event audit trail.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=False, server_default="other"),
        sa.Column("status", sa.Text(), nullable=False, server_default="draft"),
        sa.Column("project_type", sa.Text(), nullable=False, server_default="LOW_CODE"),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("ai_model", postgresql.JSONB(), nullable=True),
        sa.Column("deployment", postgresql.JSONB(), nullable=True),
        sa.Column("revenue", postgresql.JSONB(), nullable=True),
        sa.Column("page_content", postgresql.JSONB(), nullable=True),
        sa.Column("deployment_id", sa.Text(), nullable=True),
        sa.Column("deployment_state", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("owner_id", "name", name="uq_projects_owner_name"),
        sa.CheckConstraint(
            "status IN ('draft', 'developing', 'deployed', 'archived')",
            name="ck_projects_status",
        ),
        sa.CheckConstraint(
            "project_type IN ('LOW_CODE', 'NO_CODE')",
            name="ck_projects_project_type",
        ),
    )
    op.create_index("ix_projects_id", "projects", ["id"])
    op.create_index("ix_projects_owner_id", "projects", ["owner_id"])
    op.create_index("ix_projects_status", "projects", ["status"])
    op.create_index("ix_projects_deployment_id", "projects", ["deployment_id"])
    op.create_index("ix_projects_deployment_state", "projects", ["deployment_state"])

    op.create_table(
        "project_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event", sa.Text(), nullable=False),
        sa.Column("from_status", sa.Text(), nullable=False),
        sa.Column("to_status", sa.Text(), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("payload", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_project_events_project_id", "project_events", ["project_id"])

    # audit rows are append-only
    op.execute("""
        CREATE OR REPLACE FUNCTION project_events_immutable() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'project_events rows cannot be updated';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER project_events_no_update
        BEFORE UPDATE ON project_events
        FOR EACH ROW EXECUTE FUNCTION project_events_immutable();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS project_events_no_update ON project_events")
    op.execute("DROP FUNCTION IF EXISTS project_events_immutable()")
    op.drop_table("project_events")
    op.drop_table("projects")
