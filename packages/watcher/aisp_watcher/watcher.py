"""
Main watcher loop.

Coordinates the server client, state store and health server.
Handles lifecycle: startup, shutdown, signal handling.
"""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
import structlog

from aisp_shared.schemas.projects import DeploymentOutcome, PendingDeployment

from .client import ServerClient
from .config import WatcherConfig
from .health import HealthServer
from .metrics import MetricsCollector
from .state import WatcherState

log = structlog.get_logger()

SHUTDOWN_TIMEOUT = 15.0


@dataclass
class PollSummary:
    checked: int = 0
    resolved: int = 0
    timed_out: int = 0
    errors: int = 0


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class DeploymentWatcher:
    """
    Polls pending deployments until the server reports them finished.
    """

    def __init__(
        self,
        config: WatcherConfig,
        client: ServerClient | None = None,
        state: WatcherState | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self._config = config
        self._metrics = metrics or MetricsCollector()
        self._client = client or ServerClient(
            server_url=config.server.url,
            token=config.server.token or "",
            verify_tls=config.server.verify_tls,
            request_timeout=config.server.request_timeout_seconds,
            metrics=self._metrics,
        )
        self._state = state or WatcherState(config.state.db_path)
        self._health = HealthServer(
            host=config.metrics.host,
            port=config.metrics.port,
            metrics=self._metrics,
            stale_after_seconds=3 * config.polling.poll_interval_seconds,
        )
        self._last_poll_at: datetime | None = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    async def start(self) -> None:
        """Open state and client, then start the health server."""
        log.info("watcher.starting", server=self._config.server.url)
        await self._state.open()
        await self._client.open()

        if self._config.metrics.enabled:
            try:
                await self._health.start()
                log.info(
                    "watcher.health_started",
                    host=self._config.metrics.host,
                    port=self._config.metrics.port,
                )
            except OSError as exc:
                log.warning("watcher.health_start_failed", error=str(exc))

        self._running = True
        log.info("watcher.started")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        log.info("watcher.stopping")
        await self._health.stop()
        await self._client.close()
        await self._state.close()
        log.info("watcher.stopped")

    async def run_forever(self) -> None:
        """Poll until shutdown signal."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._shutdown_event.set)

        await self.start()
        try:
            while not self._shutdown_event.is_set():
                try:
                    await self.poll_once()
                except (httpx.HTTPError, ValueError) as exc:
                    self._metrics.inc("poll_errors_total")
                    log.error("watcher.poll_failed", error=str(exc))
                await self._update_health()
                try:
                    await asyncio.wait_for(
                        self._shutdown_event.wait(),
                        timeout=self._config.polling.poll_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            await asyncio.wait_for(self.stop(), timeout=SHUTDOWN_TIMEOUT)

    async def poll_once(self, now: datetime | None = None) -> PollSummary:
        """One pass over every pending deployment."""
        now = now or datetime.now(timezone.utc)
        pending = await self._client.list_pending(self._config.polling.batch_limit)
        self._last_poll_at = now
        self._metrics.inc("polls_total")
        self._metrics.set_gauge("pending_deployments", len(pending))

        dropped = await self._state.prune({(str(p.project_id), p.deployment_id) for p in pending})
        if dropped:
            log.debug("watcher.pruned", count=dropped)

        summary = PollSummary()
        for item in pending:
            summary.checked += 1
            try:
                outcome = await self._check(item, now)
            except httpx.HTTPStatusError as exc:
                summary.errors += 1
                self._metrics.inc("refresh_errors_total")
                log.warning(
                    "watcher.refresh_failed",
                    project_id=str(item.project_id),
                    deployment_id=item.deployment_id,
                    status=exc.response.status_code,
                )
                if exc.response.status_code in (404, 409):
                    # the server will not accept a result for this build any more
                    await self._state.forget(str(item.project_id), item.deployment_id)
                continue
            except httpx.HTTPError as exc:
                summary.errors += 1
                self._metrics.inc("refresh_errors_total")
                log.warning("watcher.refresh_failed", project_id=str(item.project_id), error=str(exc))
                continue

            if outcome == "timed_out":
                summary.timed_out += 1
            elif outcome == "resolved":
                summary.resolved += 1

        log.info(
            "watcher.poll_complete",
            checked=summary.checked,
            resolved=summary.resolved,
            timed_out=summary.timed_out,
            errors=summary.errors,
        )
        return summary

    async def _check(self, item: PendingDeployment, now: datetime) -> str:
        project_id = str(item.project_id)
        first_seen = await self._state.first_seen(project_id, item.deployment_id, now)
        started = _aware(item.started_at) if item.started_at else _aware(first_seen)
        elapsed = (now - started).total_seconds()
        timeout = self._config.polling.deployment_timeout_seconds

        if elapsed > timeout:
            await self._client.report_result(
                item.project_id,
                DeploymentOutcome(
                    deployment_id=item.deployment_id,
                    success=False,
                    error_detail=f"Deployment timed out after {int(timeout)} seconds",
                ),
            )
            await self._state.forget(project_id, item.deployment_id)
            self._metrics.inc("deployments_timed_out_total", platform=item.platform.value)
            log.warning(
                "watcher.deployment_timed_out",
                project_id=project_id,
                deployment_id=item.deployment_id,
                elapsed_seconds=int(elapsed),
            )
            return "timed_out"

        project = await self._client.refresh(item.project_id)
        deployment = project.get("deployment") or {}
        if deployment.get("deployment_id") != item.deployment_id or deployment.get("state") != "pending":
            await self._state.forget(project_id, item.deployment_id)
            self._metrics.inc("deployments_resolved_total", platform=item.platform.value)
            log.info(
                "watcher.deployment_resolved",
                project_id=project_id,
                deployment_id=item.deployment_id,
                state=deployment.get("state"),
            )
            return "resolved"
        return "pending"

    async def _update_health(self) -> None:
        server_ok = await self._client.check_health()
        tracked = await self._state.list_tracked()
        self._metrics.set_gauge("server_reachable", 1 if server_ok else 0)
        self._health.update_status(server_ok, self._last_poll_at, len(tracked))
