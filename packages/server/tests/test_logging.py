"""Tests for structlog configuration."""

import logging

import pytest
import structlog

from app.core.logging import configure_logging, level_number


@pytest.fixture(autouse=True)
def _restore_structlog():
    yield
    structlog.reset_defaults()


def test_level_names():
    assert level_number("info") == logging.INFO
    assert level_number("WARNING") == logging.WARNING
    with pytest.raises(ValueError):
        level_number("chatty")


@pytest.mark.parametrize("fmt", ["json", "text"])
def test_configure_logging_filters_below_level(fmt, capsys):
    configure_logging("warning", fmt)
    log = structlog.get_logger()
    log.info("project.hidden")
    log.warning("project.shown", project_id="p-1")
    out = capsys.readouterr().out
    assert "project.hidden" not in out
    assert "project.shown" in out
