"""
Third-party provider adapters and their wiring.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from app.core.config import Settings
from app.integrations.adsense import AdSenseAdapter
from app.integrations.base import (
    DeploymentAdapter,
    DeploymentDispatcher,
    ModelAdapter,
    RevenueAdapter,
)
from app.integrations.cloudflare import CloudflarePagesAdapter
from app.integrations.model_hosting import HttpModelAdapter
from aisp_shared.schemas.common import DeploymentPlatform


@dataclass
class Integrations:
    models: ModelAdapter
    deployments: DeploymentAdapter
    revenue: RevenueAdapter


def build_integrations(settings: Settings, client: httpx.AsyncClient) -> Integrations:
    """Production adapters sharing one outbound HTTP client."""
    cloudflare = CloudflarePagesAdapter(
        client,
        api_url=settings.cloudflare_api_url,
        account_id=settings.cloudflare_account_id,
        api_token=settings.cloudflare_api_token,
        production_branch=settings.cloudflare_production_branch,
    )
    return Integrations(
        models=HttpModelAdapter(client, huggingface_token=settings.huggingface_token),
        deployments=DeploymentDispatcher({DeploymentPlatform.CLOUDFLARE_PAGES: cloudflare}),
        revenue=AdSenseAdapter(
            client,
            api_url=settings.adsense_api_url,
            access_token=settings.adsense_access_token,
        ),
    )
