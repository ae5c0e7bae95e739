"""Tests for logging.py."""

import json
import logging

import pytest
import structlog

from stackyard.logging import configure_logging, event_renderer


@pytest.fixture(autouse=True)
def restore_logging():
    """Put back the quiet test configuration afterwards."""
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)
    logging.basicConfig(level=logging.WARNING, force=True)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_renderer_choice(self):
        assert isinstance(event_renderer(True), structlog.processors.JSONRenderer)
        assert isinstance(event_renderer(False), structlog.dev.ConsoleRenderer)

    def test_json_lines(self, capsys):
        configure_logging("INFO", json=True)

        structlog.get_logger("stackyard.test").info("resource_created", resource="network.test")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "resource_created"
        assert event["resource"] == "network.test"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filters_events(self, capsys):
        configure_logging("WARNING", json=True)
        log = structlog.get_logger("stackyard.test")

        log.info("resource_creating")
        log.warning("resource_not_owned")

        events = [json.loads(line)["event"] for line in capsys.readouterr().err.splitlines()]
        assert events == ["resource_not_owned"]
