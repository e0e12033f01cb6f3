"""
Contracts between the project core and third-party providers.

Adapters raise ``AdapterError`` (with the provider name and the provider's
reason) whenever the external call fails; they never touch project state.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import structlog

from app.core.errors import AdapterError
from aisp_shared.schemas.common import DeploymentPlatform
from aisp_shared.schemas.configs import AIModelConfig, DeploymentConfig
from aisp_shared.schemas.projects import DeploymentOutcome, Prediction

log = structlog.get_logger()


@dataclass(frozen=True)
class DeploymentArtifact:
    """What gets shipped: rendered HTML for NO_CODE, a repository for LOW_CODE."""

    project_id: uuid.UUID
    project_name: str
    repository_url: str
    html: Optional[str] = None


@dataclass(frozen=True)
class DeploymentHandle:
    deployment_id: str
    provider_project_id: Optional[str] = None
    provider_project_name: Optional[str] = None
    domains: list[str] = field(default_factory=list)


class ModelAdapter(Protocol):
    async def validate_model(self, config: AIModelConfig) -> None: ...

    async def predict(self, config: AIModelConfig, sample_input: Any) -> list[Prediction]: ...


class DeploymentAdapter(Protocol):
    async def start_deployment(
        self, config: DeploymentConfig, artifact: DeploymentArtifact
    ) -> DeploymentHandle: ...

    async def get_deployment_status(self, config: DeploymentConfig) -> Optional[DeploymentOutcome]:
        """Terminal outcome of ``config.deployment_id``, or None while it is still building."""
        ...


class RevenueAdapter(Protocol):
    async def verify_publisher_id(self, publisher_id: str) -> None: ...


class DeploymentDispatcher:
    """Routes deployment calls to the adapter registered for the config's platform."""

    def __init__(self, adapters: dict[DeploymentPlatform, DeploymentAdapter]):
        self._adapters = dict(adapters)

    def _adapter_for(self, platform: DeploymentPlatform) -> DeploymentAdapter:
        adapter = self._adapters.get(platform)
        if adapter is None:
            raise AdapterError(platform.value, "No deployment adapter is configured for this platform")
        return adapter

    async def start_deployment(
        self, config: DeploymentConfig, artifact: DeploymentArtifact
    ) -> DeploymentHandle:
        handle = await self._adapter_for(config.platform).start_deployment(config, artifact)
        log.info(
            "deployment.started",
            platform=config.platform.value,
            project_id=str(artifact.project_id),
            deployment_id=handle.deployment_id,
        )
        return handle

    async def get_deployment_status(self, config: DeploymentConfig) -> Optional[DeploymentOutcome]:
        return await self._adapter_for(config.platform).get_deployment_status(config)
