"""
Configuration loading and validation.

Loads watcher configuration from YAML file with environment variable resolution
for secrets (the watcher token is never stored in config files).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    url: str = "http://localhost:8000"
    token_env: str = "AISP_WATCHER_TOKEN"
    verify_tls: bool = True
    request_timeout_seconds: int = 30

    @property
    def token(self) -> str | None:
        return os.environ.get(self.token_env)


class PollingConfig(BaseModel):
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    deployment_timeout_seconds: float = Field(default=1800.0, gt=0)
    batch_limit: int = Field(default=50, ge=1, le=500)


class StateConfig(BaseModel):
    db_path: str = "./data/watcher_state.db"


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "text"] = "json"


class MetricsConfig(BaseModel):
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 9091


class WatcherConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


def load_config(path: str | Path) -> WatcherConfig:
    """Load and validate watcher configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return WatcherConfig.model_validate(raw)
