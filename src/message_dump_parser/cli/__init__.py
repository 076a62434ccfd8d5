"""Command-line interface for message dump extraction.

This module provides the ``message-dump`` tool, which extracts records from
dump files and writes them as JSON, JSON lines, CSV or plain text.
"""

from .main import main

__all__ = ["main"]
