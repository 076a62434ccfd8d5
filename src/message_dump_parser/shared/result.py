"""Diagnostic and metric types shared by all extraction layers."""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()      # State transitions and accumulator snapshots
    INFO = auto()       # Informational messages
    WARNING = auto()    # Recoverable oddities in the input
    ERROR = auto()      # Terminal extraction failures
    CRITICAL = auto()   # Unexpected internal failures


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    position: Optional[Dict[str, int]] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the entry for JSON output."""
        return {
            "severity": self.severity.name,
            "message": self.message,
            "component": self.component,
            "position": self.position,
            "details": self.details,
        }


@dataclass
class ExtractionMetrics:
    """Counters collected during one extraction run."""

    processing_time_ms: float = 0.0
    tokens_processed: int = 0
    records_emitted: int = 0
    fields_committed: int = 0
    sanitized_tags: int = 0
    max_depth: int = 0

    @property
    def tokens_per_second(self) -> float:
        """Calculate tokens consumed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.tokens_processed * 1000.0) / self.processing_time_ms

    @property
    def records_per_second(self) -> float:
        """Calculate records emitted per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.records_emitted * 1000.0) / self.processing_time_ms

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the metrics for JSON output."""
        return {
            "processing_time_ms": self.processing_time_ms,
            "tokens_processed": self.tokens_processed,
            "records_emitted": self.records_emitted,
            "fields_committed": self.fields_committed,
            "sanitized_tags": self.sanitized_tags,
            "max_depth": self.max_depth,
        }
