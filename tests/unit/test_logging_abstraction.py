"""Unit tests for the logging abstraction layer."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from nrpe_bridge.correlation import correlation_context
from nrpe_bridge.logging_abstraction import (
    BridgeLogger,
    HumanReadableFormatter,
    JSONFormatter,
    configure_library_logging,
    get_logger,
)

pytestmark = pytest.mark.unit


def _record(msg: str = "Scrape finished", extra_data: dict[str, object] | None = None) -> logging.LogRecord:
    record = logging.LogRecord(
        name="nrpe_bridge.collector",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    if extra_data is not None:
        record.extra_data = extra_data
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_formats_fields_and_context(self) -> None:
        """Test JSON output carries message, level, context and correlation ID."""
        with correlation_context("abcdef0123456789"):
            output = JSONFormatter().format(_record(extra_data={"target": "web01:5666"}))

        data = json.loads(output)
        assert data["message"] == "Scrape finished"
        assert data["level"] == "INFO"
        assert data["logger"] == "nrpe_bridge.collector"
        assert data["correlation_id"] == "abcdef0123456789"
        assert data["context"] == {"target": "web01:5666"}

    def test_without_context(self) -> None:
        """Test records without extra data have no context key."""
        data = json.loads(JSONFormatter().format(_record()))

        assert "context" not in data
        assert data["correlation_id"] is None


class TestHumanReadableFormatter:
    """Tests for HumanReadableFormatter."""

    def test_includes_short_correlation_id_and_context(self) -> None:
        """Test the first 8 chars of the correlation ID and the context are appended."""
        with correlation_context("abcdef0123456789"):
            output = HumanReadableFormatter().format(_record(extra_data={"command": "check_load", "status": "OK"}))

        assert "[abcdef01]" in output
        assert "> Scrape finished" in output
        assert output.endswith("| command=check_load | status=OK")

    def test_placeholder_without_correlation_id(self) -> None:
        """Test a placeholder is shown outside any scrape scope."""
        output = HumanReadableFormatter().format(_record())

        assert "[--------]" in output


class TestBridgeLogger:
    """Tests for BridgeLogger."""

    def test_human_file_output(self, tmp_path: Path) -> None:
        """Test human output to a file with structured context."""
        log_file = tmp_path / "bridge.log"
        logger = BridgeLogger("nrpe_bridge.test.human_file", log_format="human", human_output=str(log_file))

        logger.info("Command failed: %s", "timeout", extra={"command": "check_disk"})
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text()
        assert "Command failed: timeout" in text
        assert "command=check_disk" in text

    def test_json_file_output(self, tmp_path: Path) -> None:
        """Test JSON output goes to the configured file."""
        json_file = tmp_path / "logs" / "bridge.json"
        logger = BridgeLogger("nrpe_bridge.test.json_file", log_format="json", json_file=json_file)

        logger.warning("Target unreachable", extra={"target": "db01"})
        for handler in logger.handlers:
            handler.flush()

        data = json.loads(json_file.read_text().splitlines()[0])
        assert data["message"] == "Target unreachable"
        assert data["context"] == {"target": "db01"}

    def test_both_formats(self, tmp_path: Path) -> None:
        """Test 'both' attaches a JSON and a human handler."""
        logger = BridgeLogger(
            "nrpe_bridge.test.both",
            log_format="both",
            json_file=tmp_path / "bridge.json",
            human_output="stderr",
        )

        assert len(logger.handlers) == 2

    def test_does_not_duplicate_handlers(self) -> None:
        """Test a second logger with the same name reuses the handlers."""
        first = BridgeLogger("nrpe_bridge.test.dupe", human_output="stdout")
        second = BridgeLogger("nrpe_bridge.test.dupe", human_output="stdout")

        assert len(second.handlers) == len(first.handlers) == 1
        assert second.logger.propagate is False

    def test_set_level_updates_handlers(self) -> None:
        """Test set_level applies to the logger and all its handlers."""
        logger = BridgeLogger("nrpe_bridge.test.level")

        logger.set_level(logging.WARNING)

        assert logger.logger.level == logging.WARNING
        assert all(h.level == logging.WARNING for h in logger.handlers)

    def test_exception_includes_traceback(self, tmp_path: Path) -> None:
        """Test exception() logs the traceback."""
        log_file = tmp_path / "exc.log"
        logger = BridgeLogger("nrpe_bridge.test.exception", human_output=str(log_file))

        try:
            raise ValueError("bad perfdata")
        except ValueError:
            logger.exception("Unexpected failure", extra={"target": "web01"})
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text()
        assert "Traceback" in text
        assert "ValueError: bad perfdata" in text


def test_get_logger_uses_overrides(tmp_path: Path) -> None:
    """Test get_logger passes explicit overrides through."""
    logger = get_logger("nrpe_bridge.test.get_logger", log_format="human", human_output=str(tmp_path / "x.log"))

    assert isinstance(logger, BridgeLogger)
    assert logger.log_format == "human"
    assert isinstance(logger.handlers[0], logging.FileHandler)


def test_configure_library_logging_sets_package_level() -> None:
    """Test the package logger level follows the configured level."""
    configure_library_logging(logging.DEBUG)
    try:
        package_logger = logging.getLogger("nrpe_bridge")
        assert package_logger.level == logging.DEBUG
        assert package_logger.handlers
    finally:
        configure_library_logging(logging.INFO)


def test_configure_library_logging_relevels_existing_loggers() -> None:
    """Test loggers created before configuration follow the configured level."""
    logger = get_logger("nrpe_bridge.test.relevel")
    configure_library_logging(logging.DEBUG)
    try:
        assert logger.logger.getEffectiveLevel() == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in logger.handlers)
        assert get_logger("nrpe_bridge.test.relevel_late").logger.level == logging.DEBUG
    finally:
        configure_library_logging(logging.INFO)

    assert logger.logger.getEffectiveLevel() == logging.INFO


def test_records_point_at_calling_module(tmp_path: Path) -> None:
    """Test log lines name the module that logged, not the wrapper."""
    log_file = tmp_path / "caller.log"
    logger = BridgeLogger("nrpe_bridge.test.caller", human_output=str(log_file))

    logger.info("Scrape started")
    for handler in logger.handlers:
        handler.flush()

    text = log_file.read_text()
    assert "[test_logging_abstraction:" in text
    assert "[logging_abstraction:" not in text
