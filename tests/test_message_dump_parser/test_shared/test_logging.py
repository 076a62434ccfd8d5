"""Tests for correlation-aware logging and diagnostic types."""

import logging

import pytest

from message_dump_parser.shared import (
    CorrelationLogger,
    DiagnosticEntry,
    DiagnosticSeverity,
    ExtractionMetrics,
    get_logger,
)


class TestCorrelationLogger:
    """Test suite for CorrelationLogger."""

    def test_component_defaults_to_last_name_segment(self):
        """Test the default component name."""
        logger = CorrelationLogger("message_dump_parser.extraction.machine")
        assert logger.component == "machine"

    def test_records_carry_correlation_info(self, caplog):
        """Test that component and correlation ID are attached to records."""
        logger = get_logger("message_dump_parser.test", "run-42", "tester")

        with caplog.at_level(logging.INFO, logger="message_dump_parser.test"):
            logger.info("hello", extra={"records": 3})

        record = caplog.records[-1]
        assert record.getMessage() == "hello"
        assert record.component == "tester"
        assert record.correlation_id == "run-42"
        assert record.records == 3

    def test_is_enabled_for(self):
        """Test level checks are delegated to the wrapped logger."""
        logger = get_logger("message_dump_parser.level_check")
        logger.logger.setLevel(logging.WARNING)
        try:
            assert logger.is_enabled_for(logging.ERROR)
            assert not logger.is_enabled_for(logging.DEBUG)
        finally:
            logger.logger.setLevel(logging.NOTSET)


class TestDiagnosticEntry:
    """Test suite for DiagnosticEntry."""

    def test_empty_message_rejected(self):
        """Test diagnostic validation."""
        with pytest.raises(ValueError, match="message cannot be empty"):
            DiagnosticEntry(DiagnosticSeverity.INFO, "", "component")
        with pytest.raises(ValueError, match="component cannot be empty"):
            DiagnosticEntry(DiagnosticSeverity.INFO, "message", "")

    def test_to_dict(self):
        """Test serialization of a diagnostic entry."""
        entry = DiagnosticEntry(
            DiagnosticSeverity.ERROR,
            "Invalid xml format",
            "message_state_machine",
            position={"line": 1, "column": 2, "offset": 1},
            details={"depth": 2},
        )

        assert entry.to_dict() == {
            "severity": "ERROR",
            "message": "Invalid xml format",
            "component": "message_state_machine",
            "position": {"line": 1, "column": 2, "offset": 1},
            "details": {"depth": 2},
        }


class TestExtractionMetrics:
    """Test suite for ExtractionMetrics."""

    def test_rates_without_time(self):
        """Test that rates are zero before any time was measured."""
        metrics = ExtractionMetrics(tokens_processed=10, records_emitted=2)
        assert metrics.tokens_per_second == 0.0
        assert metrics.records_per_second == 0.0

    def test_rates(self):
        """Test throughput calculations."""
        metrics = ExtractionMetrics(
            processing_time_ms=500.0, tokens_processed=100, records_emitted=5
        )
        assert metrics.tokens_per_second == pytest.approx(200.0)
        assert metrics.records_per_second == pytest.approx(10.0)
        assert metrics.to_dict()["tokens_processed"] == 100
