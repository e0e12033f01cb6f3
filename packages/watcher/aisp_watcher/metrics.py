"""
Metrics collection and Prometheus-compatible exposition.

Counters and gauges may carry labels (``platform="cloudflare-pages"``); each
label set is its own series under the metric name.
"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Any

PREFIX = "watcher_"

Labels = tuple[tuple[str, str], ...]

DESCRIPTIONS = {
    "polls_total": "Completed polls of the pending deployment list",
    "poll_errors_total": "Polls that failed before any deployment was checked",
    "refresh_errors_total": "Refresh or report calls that the server rejected or never answered",
    "request_retries_total": "HTTP requests retried after a 429, 5xx or connection error",
    "deployments_resolved_total": "Deployments the server reported as finished",
    "deployments_timed_out_total": "Deployments reported failed for exceeding the build timeout",
    "pending_deployments": "Deployments pending at the last poll",
    "server_reachable": "1 when the platform server answered its health check",
}


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _series(name: str, labels: Labels) -> str:
    if not labels:
        return name
    body = ",".join(f'{k}="{_escape(v)}"' for k, v in labels)
    return f"{name}{{{body}}}"


class MetricsCollector:
    """In-process counters and gauges with a Prometheus text export."""

    def __init__(self, prefix: str = PREFIX) -> None:
        self._prefix = prefix
        self._counters: dict[tuple[str, Labels], int] = defaultdict(int)
        self._gauges: dict[tuple[str, Labels], float] = {}
        self._start_time = time.time()

    def _key(self, name: str, labels: dict[str, str]) -> tuple[str, Labels]:
        return f"{self._prefix}{name}", tuple(sorted((k, str(v)) for k, v in labels.items()))

    def inc(self, name: str, value: int = 1, **labels: str) -> None:
        self._counters[self._key(name, labels)] += value

    def set_gauge(self, name: str, value: float, **labels: str) -> None:
        self._gauges[self._key(name, labels)] = value

    def get(self, name: str, **labels: str) -> int | float:
        """Value of a gauge, or a counter summed over every series matching ``labels``."""
        full = f"{self._prefix}{name}"
        wanted = {(k, str(v)) for k, v in labels.items()}
        for (metric, series), value in self._gauges.items():
            if metric == full and wanted <= set(series):
                return value
        return sum(
            value
            for (metric, series), value in self._counters.items()
            if metric == full and wanted <= set(series)
        )

    def _export(self, lines: list[str], store: dict, kind: str) -> None:
        seen: set[str] = set()
        for (name, labels), value in sorted(store.items()):
            if name not in seen:
                seen.add(name)
                help_text = DESCRIPTIONS.get(name[len(self._prefix):])
                if help_text:
                    lines.append(f"# HELP {name} {help_text}")
                lines.append(f"# TYPE {name} {kind}")
            lines.append(f"{_series(name, labels)} {value}")

    def to_prometheus(self) -> str:
        lines: list[str] = []
        self._export(lines, self._counters, "counter")
        self._export(lines, self._gauges, "gauge")
        uptime = time.time() - self._start_time
        lines.append(f"# TYPE {self._prefix}uptime_seconds gauge")
        lines.append(f"{self._prefix}uptime_seconds {uptime:.1f}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "counters": {_series(n, l): v for (n, l), v in self._counters.items()},
            "gauges": {_series(n, l): v for (n, l), v in self._gauges.items()},
            "uptime_seconds": time.time() - self._start_time,
        }
