# Table definitions are imported here so SQLModel.metadata is complete for Alembic and init_db.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .project import Project  # noqa: F401
from .project_event import ProjectEventRecord  # noqa: F401
