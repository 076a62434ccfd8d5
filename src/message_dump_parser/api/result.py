"""Result objects returned by the parser API."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Union

from message_dump_parser.extraction import MessageDumpError, MessageRecord
from message_dump_parser.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ExtractionMetrics,
)


class ExtractionStatus(Enum):
    """Terminal outcome of one extraction run. Outcomes are mutually exclusive."""

    COMPLETED = auto()         # All input consumed without violations
    INVALID_DOCUMENT = auto()  # Structural violation of the dump grammar
    TOKEN_ERROR = auto()       # Malformed input reported by the token source
    CANCELLED = auto()         # Caller stopped the run


@dataclass(frozen=True)
class Completion:
    """Marker ending a successful run of :meth:`MessageDumpParser.iter_outcomes`."""

    metrics: ExtractionMetrics


@dataclass(frozen=True)
class Failure:
    """Marker ending a failed or cancelled run of :meth:`MessageDumpParser.iter_outcomes`."""

    status: ExtractionStatus
    error: Optional[MessageDumpError] = None


Outcome = Union[MessageRecord, Completion, Failure]


@dataclass
class ExtractionResult:
    """Records and terminal status of one extraction run.

    Examples:
        >>> from message_dump_parser import parse_string
        >>> result = parse_string(
        ...     "<FileDump><Message><From>a@b.c</From>"
        ...     "<Message>Hi</Message></Message></FileDump>")
        >>> result.success, result.record_count
        (True, 1)
    """

    status: Optional[ExtractionStatus] = None
    records: List[MessageRecord] = field(default_factory=list)
    error: Optional[MessageDumpError] = None
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    metrics: ExtractionMetrics = field(default_factory=ExtractionMetrics)
    correlation_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is ExtractionStatus.COMPLETED

    @property
    def record_count(self) -> int:
        return len(self.records)

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        position: Optional[Dict[str, int]] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add a diagnostic entry to the result."""
        self.diagnostics.append(DiagnosticEntry(
            severity=severity,
            message=message,
            component=component,
            position=position,
            details=details,
            correlation_id=self.correlation_id,
        ))

    def raise_for_error(self) -> None:
        """Raise the terminal error of a failed run; do nothing otherwise."""
        if self.error is not None:
            raise self.error

    def summary(self) -> Dict[str, Any]:
        """Summarize the run for reporting."""
        return {
            "status": self.status.name if self.status else None,
            "success": self.success,
            "record_count": self.record_count,
            "error": str(self.error) if self.error else None,
            "error_reason": getattr(self.error, "reason", None),
            "metrics": self.metrics.to_dict(),
            "diagnostics": [entry.to_dict() for entry in self.diagnostics],
        }
