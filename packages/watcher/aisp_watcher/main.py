"""
Watcher entry point.

Loads configuration, configures logging, and starts the watcher.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import structlog
from pydantic import ValidationError

from .config import load_config
from .watcher import DeploymentWatcher


def level_number(level: str) -> int:
    """Numeric stdlib level for a name such as "info"; unknown names raise ValueError."""
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level}")
    return number


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            level_number(level)
        ),
    )


def run() -> None:
    """CLI entry point for the watcher."""
    parser = argparse.ArgumentParser(description="AI Service Platform deployment watcher")
    parser.add_argument(
        "-c", "--config",
        default="deploy-watcher.yaml",
        help="Path to configuration file (default: deploy-watcher.yaml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll and exit",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except (ValidationError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.logging.level, config.logging.format)
    log = structlog.get_logger()
    log.info("watcher.config_loaded", config_path=args.config, server=config.server.url)

    if not config.server.token:
        log.error("watcher.missing_token", env=config.server.token_env)
        sys.exit(1)

    watcher = DeploymentWatcher(config)
    try:
        if args.once:
            asyncio.run(_run_once(watcher))
        else:
            asyncio.run(watcher.run_forever())
    except KeyboardInterrupt:
        pass


async def _run_once(watcher: DeploymentWatcher) -> None:
    await watcher.start()
    try:
        await watcher.poll_once()
    finally:
        await watcher.stop()


if __name__ == "__main__":
    run()
