"""
Health and metrics HTTP server.

Exposes:
- GET /health: JSON status; "degraded" while the platform server is
  unreachable or the poll loop has stalled
- GET /metrics: Prometheus text exposition
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from aiohttp import web

from .metrics import MetricsCollector


class HealthServer:
    """aiohttp app reporting the watcher's view of the platform server."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 9091,
        metrics: MetricsCollector | None = None,
        stale_after_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._host = host
        self._port = port
        self._metrics = metrics or MetricsCollector()
        self._stale_after = stale_after_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._server_reachable = False
        self._last_poll_at: datetime | None = None
        self._tracked = 0
        self._runner: web.AppRunner | None = None

    def update_status(
        self,
        server_reachable: bool,
        last_poll_at: datetime | None,
        tracked_deployments: int,
    ) -> None:
        self._server_reachable = server_reachable
        self._last_poll_at = last_poll_at
        self._tracked = tracked_deployments

    def poll_stale(self, now: datetime | None = None) -> bool:
        if self._stale_after is None:
            return False
        if self._last_poll_at is None:
            return True
        now = now or self._clock()
        return (now - self._last_poll_at).total_seconds() > self._stale_after

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._health_handler)
        app.router.add_get("/metrics", self._metrics_handler)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        await web.TCPSite(self._runner, self._host, self._port).start()

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _health_handler(self, request: web.Request) -> web.Response:
        stale = self.poll_stale()
        return web.json_response(
            {
                "status": "healthy" if self._server_reachable and not stale else "degraded",
                "server_reachable": self._server_reachable,
                "poll_stale": stale,
                "last_poll_at": self._last_poll_at.isoformat() if self._last_poll_at else None,
                "tracked_deployments": self._tracked,
            }
        )

    async def _metrics_handler(self, request: web.Request) -> web.Response:
        return web.Response(text=self._metrics.to_prometheus(), content_type="text/plain")
