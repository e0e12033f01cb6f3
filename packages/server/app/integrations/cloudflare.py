"""
Cloudflare Pages deployment adapter.

LOW_CODE projects are git-connected Pages projects; a deployment is a build
of the production branch. NO_CODE projects are direct-upload projects that
receive the rendered ``index.html``.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import AdapterError
from app.integrations.base import DeploymentArtifact, DeploymentHandle
from aisp_shared.schemas.configs import DeploymentConfig
from aisp_shared.schemas.projects import DeploymentOutcome

log = structlog.get_logger()

PROVIDER = "cloudflare-pages"

_FAILED_STATUSES = {"failure", "canceled", "cancelled"}


def pages_project_name(name: str) -> str:
    """Pages project names are lowercase alphanumerics and dashes, at most 58 chars."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:58].rstrip("-") or "project"


def github_source(repository_url: str) -> Optional[dict[str, Any]]:
    parts = urlsplit(repository_url)
    if parts.hostname != "github.com":
        return None
    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 2:
        return None
    repo = segments[1][:-4] if segments[1].endswith(".git") else segments[1]
    return {"type": "github", "config": {"owner": segments[0], "repo_name": repo}}


class CloudflarePagesAdapter:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_url: str,
        account_id: str,
        api_token: str,
        production_branch: str = "main",
    ):
        self._client = client
        self._base = f"{api_url.rstrip('/')}/accounts/{account_id}/pages/projects"
        self._api_token = api_token
        self._account_id = account_id
        self._production_branch = production_branch

    async def _call(self, method: str, path: str, **kwargs) -> tuple[int, Any]:
        if not self._api_token or not self._account_id:
            raise AdapterError(PROVIDER, "Cloudflare API credentials are not configured")
        url = f"{self._base}{path}"
        try:
            resp = await self._client.request(
                method, url, headers={"Authorization": f"Bearer {self._api_token}"}, **kwargs
            )
        except httpx.HTTPError as exc:
            log.warning("cloudflare.request_failed", url=url, error=str(exc))
            raise AdapterError(PROVIDER, f"Request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code == 404:
            return resp.status_code, None
        if resp.status_code >= 300 or not body.get("success", False):
            errors = body.get("errors") or []
            reason = "; ".join(str(e.get("message", e)) for e in errors) or f"HTTP {resp.status_code}"
            raise AdapterError(PROVIDER, reason, details={"status": resp.status_code})
        return resp.status_code, body.get("result")

    async def _ensure_project(self, name: str, artifact: DeploymentArtifact) -> dict[str, Any]:
        _, project = await self._call("GET", f"/{name}")
        if project is not None:
            return project

        payload: dict[str, Any] = {"name": name, "production_branch": self._production_branch}
        if artifact.html is None:
            source = github_source(artifact.repository_url)
            if source is None:
                raise AdapterError(PROVIDER, "Git-connected projects need a github.com repository URL")
            payload["source"] = source
        _, project = await self._call("POST", "", json=payload)
        log.info("cloudflare.project_created", name=name, project_id=project.get("id"))
        return project

    async def start_deployment(
        self, config: DeploymentConfig, artifact: DeploymentArtifact
    ) -> DeploymentHandle:
        name = config.provider_project_name or pages_project_name(artifact.project_name)
        project = await self._ensure_project(name, artifact)

        if artifact.html is None:
            _, result = await self._call(
                "POST", f"/{name}/deployments", data={"branch": self._production_branch}
            )
        else:
            content = artifact.html.encode("utf-8")
            digest = hashlib.sha256(content).hexdigest()[:32]
            _, result = await self._call(
                "POST",
                f"/{name}/deployments",
                data={"manifest": json.dumps({"/index.html": digest})},
                files={digest: ("index.html", content, "text/html")},
            )
        if not result or not result.get("id"):
            raise AdapterError(PROVIDER, "Deployment response carried no id")

        return DeploymentHandle(
            deployment_id=result["id"],
            provider_project_id=project.get("id"),
            provider_project_name=name,
            domains=list(project.get("domains") or []),
        )

    async def get_deployment_status(self, config: DeploymentConfig) -> Optional[DeploymentOutcome]:
        if not config.deployment_id or not config.provider_project_name:
            raise AdapterError(PROVIDER, "Deployment has no provider project to query")

        _, result = await self._call(
            "GET", f"/{config.provider_project_name}/deployments/{config.deployment_id}"
        )
        if result is None:
            return DeploymentOutcome(
                deployment_id=config.deployment_id,
                success=False,
                error_detail="Deployment no longer exists on Cloudflare Pages",
            )

        stage = result.get("latest_stage") or {}
        stage_name, stage_status = stage.get("name"), stage.get("status")
        if stage_status in _FAILED_STATUSES:
            return DeploymentOutcome(
                deployment_id=config.deployment_id,
                success=False,
                error_detail=f"Stage '{stage_name}' ended with status '{stage_status}'",
            )
        if stage_name == "deploy" and stage_status == "success":
            aliases = result.get("aliases") or []
            url = aliases[0] if aliases else result.get("url")
            if not url:
                raise AdapterError(PROVIDER, "Deployment succeeded without a URL")
            try:
                return DeploymentOutcome(deployment_id=config.deployment_id, success=True, url=url)
            except PydanticValidationError as exc:
                raise AdapterError(PROVIDER, f"Deployment URL is not absolute: {url}") from exc
        return None
