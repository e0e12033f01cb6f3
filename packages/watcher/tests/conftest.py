"""
Shared fixtures for watcher tests.

``FakeServer`` stands in for the platform's /api/v1/deployments routes and is
served in-process through httpx.ASGITransport.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from aisp_watcher.client import ServerClient
from aisp_watcher.config import WatcherConfig
from aisp_watcher.metrics import MetricsCollector
from aisp_watcher.state import WatcherState
from aisp_watcher.watcher import DeploymentWatcher

TOKEN = "watcher-secret"


class FakeServer:
    def __init__(self) -> None:
        self.pending: list[dict[str, Any]] = []
        self.deployments: dict[str, dict[str, Any]] = {}
        self.refresh_errors: dict[str, int] = {}
        self.results: list[tuple[str, dict[str, Any]]] = []
        self.pending_failures = 0
        self.requests: list[str] = []

    def add_pending(self, project_id: str, deployment_id: str, started_at: str | None = None) -> None:
        self.pending.append(
            {
                "project_id": project_id,
                "deployment_id": deployment_id,
                "platform": "cloudflare-pages",
                "started_at": started_at,
            }
        )
        self.deployments[project_id] = {"deployment_id": deployment_id, "state": "pending"}

    def finish(self, project_id: str, state: str = "succeeded") -> None:
        self.deployments[project_id]["state"] = state
        self.pending = [p for p in self.pending if p["project_id"] != project_id]

    def build_app(self) -> FastAPI:
        app = FastAPI()

        def authorized(authorization: str | None) -> bool:
            return authorization == f"Bearer {TOKEN}"

        @app.get("/health")
        async def health():
            return {"status": "ok"}

        @app.get("/api/v1/deployments/pending")
        async def pending(limit: int = 50, authorization: str | None = Header(None)):
            self.requests.append("pending")
            if not authorized(authorization):
                return JSONResponse({"error": {"code": "AUTHENTICATION_FAILED"}}, status_code=401)
            if self.pending_failures:
                self.pending_failures -= 1
                return JSONResponse({"error": {"code": "INTERNAL_ERROR"}}, status_code=503)
            return self.pending[:limit]

        @app.post("/api/v1/deployments/{project_id}/refresh")
        async def refresh(project_id: str):
            self.requests.append(f"refresh:{project_id}")
            if project_id in self.refresh_errors:
                return JSONResponse({"error": {}}, status_code=self.refresh_errors[project_id])
            return {"id": project_id, "deployment": self.deployments.get(project_id)}

        @app.post("/api/v1/deployments/{project_id}/result")
        async def result(project_id: str, request: Request):
            body = await request.json()
            self.results.append((project_id, body))
            self.finish(project_id, "succeeded" if body["success"] else "failed")
            return {"id": project_id, "deployment": self.deployments[project_id]}

        return app


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def watcher_config() -> WatcherConfig:
    return WatcherConfig.model_validate(
        {
            "server": {"url": "http://platform.test"},
            "polling": {"poll_interval_seconds": 1, "deployment_timeout_seconds": 600},
            "state": {"db_path": ":memory:"},
            "metrics": {"enabled": False},
        }
    )


def make_client(fake_server: FakeServer, metrics: MetricsCollector, token: str = TOKEN) -> ServerClient:
    return ServerClient(
        server_url="http://platform.test",
        token=token,
        metrics=metrics,
        transport=httpx.ASGITransport(app=fake_server.build_app()),
        retry_base_seconds=0,
    )


@pytest.fixture
def make_watcher(fake_server, watcher_config):
    def _make(token: str = TOKEN) -> DeploymentWatcher:
        metrics = MetricsCollector()
        return DeploymentWatcher(
            watcher_config,
            client=make_client(fake_server, metrics, token=token),
            state=WatcherState(":memory:"),
            metrics=metrics,
        )

    return _make


@pytest.fixture
async def watcher(make_watcher):
    w = make_watcher()
    await w.start()
    yield w
    await w.stop()
