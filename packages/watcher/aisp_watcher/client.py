"""
HTTP client for the platform server's deployment endpoints.

Handles:
- Listing pending deployments and asking the server to refresh them
- Reporting timed-out builds as failed
- Retry with backoff on 429, 5xx and connection errors
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any

import httpx
import structlog

from aisp_shared.schemas.projects import DeploymentOutcome, PendingDeployment

from .metrics import MetricsCollector

log = structlog.get_logger()

# Retry configuration
MAX_RETRIES = 3
RETRY_BASE_SECONDS = 1.0


class ServerClient:
    """Talks to ``/api/v1/deployments`` with the watcher's bearer token."""

    def __init__(
        self,
        server_url: str,
        token: str,
        verify_tls: bool = True,
        request_timeout: int = 30,
        metrics: MetricsCollector | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_base_seconds: float = RETRY_BASE_SECONDS,
    ):
        self._server_url = server_url.rstrip("/")
        self._token = token
        self._verify_tls = verify_tls
        self._request_timeout = request_timeout
        self._metrics = metrics
        self._transport = transport
        self._retry_base = retry_base_seconds
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._server_url,
            timeout=httpx.Timeout(self._request_timeout),
            verify=self._verify_tls,
            headers={"Authorization": f"Bearer {self._token}"},
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        assert self._client
        last_exc: Exception | None = None
        for attempt in range(MAX_RETRIES):
            try:
                resp = await self._client.request(method, path, **kwargs)

                if resp.status_code == 429:
                    retry_after = float(resp.headers.get("Retry-After", self._retry_base * (attempt + 1)))
                    log.warning("client.rate_limited", path=path, retry_after=retry_after)
                    await asyncio.sleep(retry_after)
                    continue

                resp.raise_for_status()
                return resp.json()

            except httpx.HTTPStatusError as exc:
                if 400 <= exc.response.status_code < 500:
                    log.error("client.server_rejected", path=path, status=exc.response.status_code)
                    raise  # Don't retry 4xx
                last_exc = exc
            except (httpx.ConnectError, httpx.ReadError, httpx.TimeoutException) as exc:
                last_exc = exc

            backoff = self._retry_base * (2 ** attempt)
            log.warning("client.retry", path=path, attempt=attempt + 1, backoff=backoff, error=str(last_exc))
            if self._metrics:
                self._metrics.inc("request_retries_total")
            await asyncio.sleep(backoff)

        if last_exc:
            raise last_exc
        raise httpx.HTTPError(f"{method} {path} kept being rate limited")

    async def list_pending(self, limit: int = 50) -> list[PendingDeployment]:
        data = await self._request("GET", "/api/v1/deployments/pending", params={"limit": limit})
        return [PendingDeployment.model_validate(item) for item in data]

    async def refresh(self, project_id: uuid.UUID) -> dict[str, Any]:
        return await self._request("POST", f"/api/v1/deployments/{project_id}/refresh")

    async def report_result(self, project_id: uuid.UUID, outcome: DeploymentOutcome) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/api/v1/deployments/{project_id}/result",
            json=outcome.model_dump(mode="json"),
        )

    async def check_health(self) -> bool:
        if not self._client:
            return False
        try:
            resp = await self._client.get("/health")
            return resp.status_code == 200
        except httpx.HTTPError:
            return False
