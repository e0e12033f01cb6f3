"""Tests for configuration loading and the CLI entry point."""

import sys

import pytest
import structlog
import yaml
from pydantic import ValidationError

from aisp_watcher.config import WatcherConfig, load_config
from aisp_watcher.main import configure_logging, run


@pytest.fixture(autouse=True)
def _restore_structlog():
    yield
    structlog.reset_defaults()


def test_load_config_from_yaml(tmp_path):
    config_data = {
        "server": {"url": "https://platform.example.com", "token_env": "MY_WATCHER_TOKEN"},
        "polling": {"poll_interval_seconds": 10, "deployment_timeout_seconds": 900},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config_data))

    cfg = load_config(path)
    assert cfg.server.url == "https://platform.example.com"
    assert cfg.server.token_env == "MY_WATCHER_TOKEN"
    assert cfg.polling.poll_interval_seconds == 10
    assert cfg.polling.deployment_timeout_seconds == 900


def test_load_config_defaults():
    cfg = WatcherConfig()
    assert cfg.server.url == "http://localhost:8000"
    assert cfg.state.db_path == "./data/watcher_state.db"
    assert cfg.metrics.port == 9091
    assert cfg.polling.batch_limit == 50


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == WatcherConfig()


def test_load_config_file_not_found():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/path.yaml")


def test_invalid_interval_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.dump({"polling": {"poll_interval_seconds": 0}}))
    with pytest.raises(ValidationError):
        load_config(path)


def test_token_read_from_environment(monkeypatch):
    cfg = WatcherConfig()
    monkeypatch.delenv("AISP_WATCHER_TOKEN", raising=False)
    assert cfg.server.token is None
    monkeypatch.setenv("AISP_WATCHER_TOKEN", "s3cret")
    assert cfg.server.token == "s3cret"


def test_cli_missing_config(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["aisp-watcher", "-c", "/nonexistent/watcher.yaml"])
    with pytest.raises(SystemExit) as exc:
        run()
    assert exc.value.code == 1


def test_cli_missing_token(monkeypatch, tmp_path):
    path = tmp_path / "watcher.yaml"
    path.write_text(yaml.dump({"server": {"token_env": "UNSET_WATCHER_TOKEN"}}))
    monkeypatch.delenv("UNSET_WATCHER_TOKEN", raising=False)
    monkeypatch.setattr(sys, "argv", ["aisp-watcher", "-c", str(path), "--once"])
    with pytest.raises(SystemExit) as exc:
        run()
    assert exc.value.code == 1


def test_cli_rejects_unknown_log_level(monkeypatch, tmp_path):
    path = tmp_path / "watcher.yaml"
    path.write_text(yaml.dump({"logging": {"level": "chatty"}}))
    monkeypatch.setattr(sys, "argv", ["aisp-watcher", "-c", str(path)])
    with pytest.raises(SystemExit) as exc:
        run()
    assert exc.value.code == 1


def test_configure_logging_text(capsys):
    configure_logging("error", "text")
    log = structlog.get_logger()
    log.warning("watcher.hidden")
    log.error("watcher.shown")
    out = capsys.readouterr().out
    assert "watcher.hidden" not in out
    assert "watcher.shown" in out
