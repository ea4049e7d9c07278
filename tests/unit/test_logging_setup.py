"""Unit tests for httpstash.logging_setup."""

from __future__ import annotations

import json

import pytest
import structlog

from httpstash.config import LoggingSettings
from httpstash.logging_setup import setup_logging


class TestSetupLogging:
    def test_json_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(level="INFO", format="json"))

        structlog.get_logger().info("cache_updated", url="http://example.com/")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "cache_updated"
        assert event["url"] == "http://example.com/"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filters_lower_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(level="WARNING", format="json"))

        log = structlog.get_logger()
        log.info("cache_miss", url="http://example.com/")
        log.warning("revalidation_failed", url="http://example.com/")

        lines = capsys.readouterr().err.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["revalidation_failed"]

    def test_text_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(level="DEBUG", format="text"))

        structlog.get_logger().debug("cache_open", root="/tmp/x")

        err = capsys.readouterr().err
        assert "cache_open" in err
        assert "root=/tmp/x" in err
