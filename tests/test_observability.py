"""Tests for logging setup and operation metrics."""
import logging
from logging.handlers import RotatingFileHandler

import pytest

from simple_notes.observability import (
    MetricsCollector,
    configure_logging,
    metrics,
    timed_operation,
)


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_records_success_and_failure(self):
        collector = MetricsCollector()
        collector.record_operation("notes_save", 10.0, True)
        collector.record_operation("notes_save", 30.0, False, error="disk full")

        m = collector.get_metrics()["notes_save"]
        assert m["count"] == 2
        assert m["success_count"] == 1
        assert m["error_count"] == 1
        assert m["avg_duration_ms"] == 20.0
        assert m["max_duration_ms"] == 30.0
        assert m["last_error"] == "disk full"
        assert m["last_error_time"] is not None

    def test_summary_and_reset(self):
        collector = MetricsCollector()
        collector.record_operation("a", 1.0, True)
        collector.record_operation("b", 1.0, False, error="x")
        summary = collector.get_summary()
        assert summary["total_operations"] == 2
        assert summary["total_errors"] == 1

        collector.reset()
        assert collector.get_metrics() == {}


class TestTimedOperation:
    """Tests for the timed_operation context manager."""

    def setup_method(self):
        metrics.reset()

    def test_records_success(self):
        with timed_operation("notes_list", source="store") as op:
            op["count"] = 3
        assert metrics.get_metrics()["notes_list"]["success_count"] == 1

    def test_records_and_reraises_failure(self):
        with pytest.raises(RuntimeError):
            with timed_operation("notes_save"):
                raise RuntimeError("boom")
        m = metrics.get_metrics()["notes_save"]
        assert m["error_count"] == 1
        assert m["last_error"] == "boom"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_file_handler_installed_once(self, tmp_path):
        root_logger = logging.getLogger("simple_notes")
        before = list(root_logger.handlers)
        try:
            log_file = configure_logging(tmp_path / "logs", console=False)
            configure_logging(tmp_path / "logs", console=False)

            handlers = [
                h for h in root_logger.handlers if isinstance(h, RotatingFileHandler)
            ]
            assert len(handlers) == 1
            logging.getLogger("simple_notes.test").info("hello log")
            handlers[0].flush()
            assert "hello log" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in list(root_logger.handlers):
                if handler not in before:
                    root_logger.removeHandler(handler)
                    handler.close()
