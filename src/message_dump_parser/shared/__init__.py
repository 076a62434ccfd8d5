"""Shared utilities for message dump extraction.

This module provides configuration objects, diagnostic and metric types, and
the correlation-aware logger used across all processing layers.
"""

from .config import (
    ConfigError,
    ConfigValidationError,
    ExtractorConfig,
    TokenSourceBackend,
    TokenSourceConfig,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)
from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ExtractionMetrics,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "CorrelationLogger",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "ExtractionMetrics",
    "ExtractorConfig",
    "TokenSourceBackend",
    "TokenSourceConfig",
    "get_logger",
]
