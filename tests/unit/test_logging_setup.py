"""Unit tests for logging formatters, context fields and level resolution."""

import json
import logging

import pytest

from cdp_driver.logging_setup import (
    JSONFormatter,
    TextFormatter,
    log_with_context,
    record_context,
    resolve_level,
)


def make_record(level=logging.INFO, message="Navigation finished", context=None):
    record = logging.LogRecord("cdp_driver.page", level, __file__, 10, message, (), None)
    if context is not None:
        record.context = context
    return record


@pytest.mark.unit
class TestResolveLevel:
    @pytest.mark.parametrize(
        "level,quiet,verbose,expected",
        [
            (None, False, False, logging.INFO),
            ("warning", False, False, logging.WARNING),
            ("DEBUG", True, False, logging.ERROR),
            ("ERROR", False, True, logging.DEBUG),
            ("nonsense", False, False, logging.INFO),
        ],
    )
    def test_precedence(self, level, quiet, verbose, expected):
        assert resolve_level(level, quiet, verbose) == expected


@pytest.mark.unit
class TestRecordContext:
    def test_driver_fields_come_first(self):
        record = make_record(context={"zeta": 1, "loader_id": "L2", "url": "https://example.com", "alpha": 2})
        assert list(record_context(record)) == ["url", "loader_id", "alpha", "zeta"]

    def test_record_without_context(self):
        assert record_context(make_record()) == {}


@pytest.mark.unit
class TestFormatters:
    def test_json_record_with_context(self):
        record = make_record(context={"url": "https://example.com", "loader_id": "L2"})

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "cdp_driver.page"
        assert data["message"] == "Navigation finished"
        assert data["context"] == {"url": "https://example.com", "loader_id": "L2"}
        assert "location" not in data

    def test_json_record_without_context(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert "context" not in data

    def test_json_debug_record_has_location(self):
        data = json.loads(JSONFormatter().format(make_record(logging.DEBUG)))
        assert data["location"].endswith(":10")

    def test_text_record_appends_context(self):
        record = make_record(logging.WARNING, "Gave up", context={"timeout": 500, "method": "Page.enable"})

        line = TextFormatter().format(record)

        assert line.endswith("[WARNING] cdp_driver.page: Gave up [method=Page.enable timeout=500]")

    def test_text_record_without_context(self):
        line = TextFormatter().format(make_record(logging.WARNING, "Duplicate response"))
        assert line.endswith("[WARNING] cdp_driver.page: Duplicate response")


@pytest.mark.unit
class TestLogWithContext:
    def test_context_fields_attached(self, caplog):
        logger = logging.getLogger("cdp_driver.test")

        with caplog.at_level(logging.INFO, logger="cdp_driver.test"):
            log_with_context(logger, logging.INFO, "Navigation finished", url="https://example.com")

        record = caplog.records[-1]
        assert record.context == {"url": "https://example.com"}

    def test_disabled_level_is_skipped(self, caplog):
        logger = logging.getLogger("cdp_driver.test")

        with caplog.at_level(logging.WARNING, logger="cdp_driver.test"):
            log_with_context(logger, logging.DEBUG, "ignored", url="x")

        assert caplog.records == []
