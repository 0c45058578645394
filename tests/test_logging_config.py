"""Tests for logging_config.py utility functions."""

import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from media_pipeline.core.logging_config import get_logger, logger, setup_logger
from media_pipeline.core.observability import (
    LogContext,
    MetricsCollector,
    create_logger,
    render_message,
)


class TestSetupLogger:
    """Tests for setup_logger function."""

    def test_setup_logger_default_parameters(self):
        test_logger = setup_logger()
        assert test_logger.name == "media-pipeline"
        assert len(test_logger.handlers) == 1
        assert not test_logger.propagate

    def test_setup_logger_custom_level_by_parameter(self):
        test_logger = setup_logger(name="test-param-level", level="DEBUG")
        assert test_logger.level == logging.DEBUG

    def test_setup_logger_custom_level_by_env_var(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            test_logger = setup_logger(name="test-env-level")
            assert test_logger.level == logging.WARNING

    def test_setup_logger_invalid_level_defaults_to_info(self):
        test_logger = setup_logger(name="test-invalid-level", level="INVALID_LEVEL")
        assert test_logger.level == logging.INFO

    def test_setup_logger_structured_format(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("LOG_FORMAT", None)
            test_logger = setup_logger(name="test-structured", format_type="structured")
        format_string = test_logger.handlers[0].formatter._fmt

        assert "%(asctime)s" in format_string
        assert "%(threadName)s" in format_string
        assert "%(funcName)s" in format_string

    def test_setup_logger_simple_format_by_env_var(self):
        with patch.dict(os.environ, {"LOG_FORMAT": "simple"}):
            test_logger = setup_logger(name="test-simple")
        format_string = test_logger.handlers[0].formatter._fmt
        assert "%(threadName)s" not in format_string

    def test_setup_logger_writes_to_stdout(self):
        test_logger = setup_logger(name="test-stdout")
        assert test_logger.handlers[0].stream is sys.stdout

    def test_setup_logger_no_duplicate_handlers(self):
        setup_logger(name="test-dupes")
        test_logger = setup_logger(name="test-dupes")
        assert len(test_logger.handlers) == 1

    def test_setup_logger_concurrent_calls_add_one_handler(self):
        with ThreadPoolExecutor(max_workers=8) as executor:
            loggers = list(executor.map(lambda _: setup_logger(name="test-concurrent"), range(32)))

        assert all(item is loggers[0] for item in loggers)
        assert len(loggers[0].handlers) == 1


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_namespaces_children(self):
        assert get_logger("storage").name == "media-pipeline.storage"

    def test_get_logger_keeps_prefixed_names(self):
        assert get_logger("media-pipeline.workers").name == "media-pipeline.workers"
        assert get_logger().name == "media-pipeline"


def test_module_level_logger():
    assert logger.name == "media-pipeline"


class TestStructuredLogger:
    """Tests for the context aware logger."""

    def test_context_is_rendered_into_message(self):
        structured = create_logger("test-structured-logger")
        context = LogContext(
            correlation_id="abc", operation="render:thumbnail", owner_id="u1"
        ).with_metadata(filename="a.jpg")

        with patch.object(structured._logger, "log") as mock_log:
            structured.info("Stored derivative", context, size=10)

        level, message = mock_log.call_args[0]
        assert level == logging.INFO
        assert message.startswith("[render:thumbnail] [abc] Stored derivative (")
        assert "filename=a.jpg" in message
        assert "size=10" in message
        assert "owner_id=u1" in message

    def test_kwargs_without_context(self):
        assert render_message("Batch processing completed", None, {"total": 3}) == (
            "Batch processing completed (total=3)"
        )
        assert render_message("plain", None, {}) == "plain"

    def test_child_context_keeps_correlation_id(self):
        parent = LogContext(component="pipeline_coordinator").with_metadata(filename="a.jpg")
        child = parent.with_operation("render:large").with_metadata(variant="large")

        assert child.correlation_id == parent.correlation_id
        assert parent.metadata == {"filename": "a.jpg"}
        assert child.metadata == {"filename": "a.jpg", "variant": "large"}

    def test_disabled_level_is_not_rendered(self):
        structured = create_logger("test-structured-disabled")
        structured._logger.setLevel(logging.ERROR)
        with patch.object(structured._logger, "log") as mock_log:
            structured.debug("noise")
        mock_log.assert_not_called()

    def test_debug_flag_forces_debug_level(self):
        assert create_logger("test-debug-flag", debug=True).level == logging.DEBUG


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_record_and_summarize(self):
        collector = MetricsCollector()
        collector.record("render:thumbnail", 0.0, True, size=10)
        collector.record("render:thumbnail", 0.0, False, "boom")
        collector.record("render:original", 0.0, True)

        summary = collector.get_summary("render:thumbnail")
        assert summary["total"] == 2
        assert summary["failed"] == 1
        assert summary["success_rate"] == 0.5
        assert collector.get_metrics("render:thumbnail")[1].error == "boom"
        assert len(collector.get_metrics()) == 3

        collector.clear()
        assert collector.get_summary() == {}
