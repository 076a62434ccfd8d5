"""Tests for extraction result objects."""

import pytest

from message_dump_parser.api.result import ExtractionResult, ExtractionStatus
from message_dump_parser.extraction import InvalidDocumentError, MessageRecord
from message_dump_parser.shared import DiagnosticSeverity


class TestExtractionResult:
    """Tests for ExtractionResult."""

    def test_defaults(self):
        """Test an empty result."""
        result = ExtractionResult()

        assert result.status is None
        assert not result.success
        assert result.record_count == 0
        assert result.diagnostics == []
        result.raise_for_error()

    def test_add_diagnostic(self):
        """Test that diagnostics inherit the correlation ID."""
        result = ExtractionResult(correlation_id="abc")
        result.add_diagnostic(DiagnosticSeverity.WARNING, "odd", "tester", details={"k": 1})

        entry = result.diagnostics[0]
        assert entry.severity is DiagnosticSeverity.WARNING
        assert entry.correlation_id == "abc"
        assert entry.details == {"k": 1}

    def test_raise_for_error(self):
        """Test that the stored error is raised."""
        result = ExtractionResult(
            status=ExtractionStatus.INVALID_DOCUMENT,
            error=InvalidDocumentError("unexpected field <X>"),
        )
        with pytest.raises(InvalidDocumentError, match="Invalid xml format"):
            result.raise_for_error()

    def test_summary(self):
        """Test the reporting summary."""
        result = ExtractionResult(
            status=ExtractionStatus.INVALID_DOCUMENT,
            records=[MessageRecord({"From": "a"})],
            error=InvalidDocumentError("unexpected field <X>"),
        )

        summary = result.summary()

        assert summary["status"] == "INVALID_DOCUMENT"
        assert summary["success"] is False
        assert summary["record_count"] == 1
        assert summary["error"] == "Invalid xml format"
        assert summary["error_reason"] == "unexpected field <X>"
        assert summary["metrics"]["records_emitted"] == 0
