"""
Shared FastAPI dependencies.
"""

from __future__ import annotations

from fastapi import Request

from app.services.projects import ProjectService


def get_project_service(request: Request) -> ProjectService:
    """The ProjectService wired up in the application lifespan."""
    return request.app.state.project_service
