"""Public parser API.

Key Components:
    parse, parse_string, parse_file: Collect records into an ExtractionResult
    iter_records: Lazy record iteration raising the terminal error
    MessageDumpParser: Configured, reusable, cancellable parser
    InMemorySink, JSONLinesSink, CallbackSink: Record sinks
    records_to_dataframe: pandas integration
"""

from .adapters import records_to_dataframe, result_to_dataframe
from .parser import (
    MessageDumpParser,
    iter_records,
    parse,
    parse_file,
    parse_string,
)
from .result import (
    Completion,
    ExtractionResult,
    ExtractionStatus,
    Failure,
    Outcome,
)
from .sinks import CallbackSink, InMemorySink, JSONLinesSink, RecordSink

__all__ = [
    "CallbackSink",
    "Completion",
    "ExtractionResult",
    "ExtractionStatus",
    "Failure",
    "InMemorySink",
    "JSONLinesSink",
    "MessageDumpParser",
    "Outcome",
    "RecordSink",
    "iter_records",
    "parse",
    "parse_file",
    "parse_string",
    "records_to_dataframe",
    "result_to_dataframe",
]
