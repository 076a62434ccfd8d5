"""Parser API for extracting message records from dump documents.

This module connects a token source to the message state machine and offers
three ways to consume records:

- ``parse()`` / ``MessageDumpParser.parse()``: callback per record plus a
  collected :class:`ExtractionResult`
- ``MessageDumpParser.iter_outcomes()``: lazy sequence of records ending with
  a :class:`Completion` or :class:`Failure` marker
- ``iter_records()``: lazy sequence of records that raises the terminal error
"""

import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

from message_dump_parser.extraction import (
    DiagnosticSink,
    InvalidDocumentError,
    MessageRecord,
    MessageStateMachine,
    TokenSourceError,
)
from message_dump_parser.shared import (
    DiagnosticSeverity,
    ExtractionMetrics,
    ExtractorConfig,
    get_logger,
)
from message_dump_parser.tokenization import InputType, open_token_stream

from .result import (
    Completion,
    ExtractionResult,
    ExtractionStatus,
    Failure,
    Outcome,
)

RecordCallback = Callable[[MessageRecord], None]

MS_PER_SECOND = 1000
PREVIEW_LENGTH = 100


def _check_input(input_data: Any) -> None:
    if isinstance(input_data, (str, bytes, bytearray, Path)) or hasattr(input_data, "read"):
        return
    raise TypeError(f"Unsupported input type: {type(input_data).__name__}")


def _resolve_callback(on_record: Any) -> Optional[RecordCallback]:
    if on_record is None:
        return None
    if hasattr(on_record, "emit"):
        return on_record.emit
    if callable(on_record):
        return on_record
    raise TypeError("on_record must be callable or provide an emit() method")


class MessageDumpParser:
    """Configured, reusable message dump parser.

    Attributes:
        config: Extractor configuration
        diagnostic_sink: Receives state machine diagnostics in diagnostic mode
        correlation_id: Correlation ID for logging

    Examples:
        Collecting records:
        >>> parser = MessageDumpParser()
        >>> result = parser.parse(
        ...     "<FileDump><Message><From>a@b.c</From>"
        ...     "<Message>Hi</Message></Message></FileDump>")
        >>> result.records[0].body
        'Hi'

        Streaming with a terminal marker:
        >>> outcomes = list(parser.iter_outcomes("<FileDump><Oops/></FileDump>"))
        >>> outcomes[-1].status.name
        'INVALID_DOCUMENT'
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        diagnostic_sink: Optional[DiagnosticSink] = None
    ) -> None:
        """Initialize the parser.

        Args:
            config: Extractor configuration (defaults to the message dump schema)
            diagnostic_sink: Optional sink for per-transition diagnostics
        """
        self.config = config or ExtractorConfig()
        self.diagnostic_sink = diagnostic_sink
        self.correlation_id = self.config.correlation_id
        self.logger = get_logger(__name__, self.correlation_id, "message_dump_parser")

        self._cancel_event = threading.Event()
        self._last_metrics = ExtractionMetrics()

        # Parser state for multi-parse scenarios
        self._parse_count = 0
        self._successful_parses = 0
        self._records_emitted = 0
        self._total_processing_time = 0.0

    def cancel(self) -> None:
        """Stop the running extraction before the next token.

        Safe to call from a record callback or from another thread. The run
        ends with :attr:`ExtractionStatus.CANCELLED`; no partial record is
        emitted and no completion is signalled. A request made before a run
        starts iterating cancels that run. The request is consumed when the
        run ends.
        """
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """Whether a cancellation request is pending."""
        return self._cancel_event.is_set()

    def iter_outcomes(self, input_data: InputType) -> Iterator[Outcome]:
        """Extract records lazily.

        Yields:
            One :class:`MessageRecord` per closed ``Message`` element in
            document order, then exactly one :class:`Completion` or
            :class:`Failure` marker

        Raises:
            TypeError: If the input type is not supported
        """
        _check_input(input_data)
        machine = MessageStateMachine(self.config, self.diagnostic_sink)
        start_time = time.time()
        status: Optional[ExtractionStatus] = None

        self.logger.info(
            "Starting message extraction",
            extra={
                "input_type": type(input_data).__name__,
                "backend": self.config.source.backend.value,
                "diagnostics": self.config.diagnostics,
            }
        )

        events = open_token_stream(input_data, self.config.source, self.correlation_id)
        try:
            for event in events:
                if self._cancel_event.is_set():
                    status = ExtractionStatus.CANCELLED
                    self.logger.info("Message extraction cancelled")
                    yield Failure(status)
                    return

                try:
                    step = machine.process(event)
                except Exception:
                    self.logger.exception(
                        "Unexpected error in state machine",
                        extra={"event": type(event).__name__, "phase": machine.phase.name}
                    )
                    raise
                if step.record is not None:
                    yield step.record
                if step.error is not None:
                    status = (
                        ExtractionStatus.TOKEN_ERROR
                        if isinstance(step.error, TokenSourceError)
                        else ExtractionStatus.INVALID_DOCUMENT
                    )
                    yield Failure(status, step.error)
                    return
                if step.completed:
                    status = ExtractionStatus.COMPLETED
                    machine.metrics.processing_time_ms = (
                        (time.time() - start_time) * MS_PER_SECOND
                    )
                    yield Completion(machine.metrics)
                    return
        finally:
            events.close()
            self._cancel_event.clear()
            processing_time = (time.time() - start_time) * MS_PER_SECOND
            machine.metrics.processing_time_ms = processing_time
            self._last_metrics = machine.metrics
            self._record_run(status, machine.metrics)

    def iter_records(self, input_data: InputType) -> Iterator[MessageRecord]:
        """Extract records lazily, raising the terminal error.

        Raises:
            InvalidDocumentError: On a structural violation, after all records
                completed before it were yielded
            TokenSourceError: On malformed input reported by the token source
        """
        for outcome in self.iter_outcomes(input_data):
            if isinstance(outcome, MessageRecord):
                yield outcome
            elif isinstance(outcome, Failure) and outcome.error is not None:
                raise outcome.error

    def parse(
        self,
        input_data: InputType,
        on_record: Union[RecordCallback, Any, None] = None,
        collect: bool = True
    ) -> ExtractionResult:
        """Extract all records into an :class:`ExtractionResult`.

        Document errors are reported in the result rather than raised. An empty
        or whitespace-only document has no root element; the built-in backend
        reports it as :attr:`ExtractionStatus.INVALID_DOCUMENT` and lxml as
        :attr:`ExtractionStatus.TOKEN_ERROR`.

        Args:
            input_data: Document as str, bytes, Path or file object
            on_record: Callable or sink (object with ``emit``) invoked per record
            collect: Keep records in ``result.records``; disable for large
                inputs consumed through ``on_record``

        Returns:
            ExtractionResult with records, status, error and metrics
        """
        callback = _resolve_callback(on_record)
        result = ExtractionResult(correlation_id=self.correlation_id)

        for outcome in self.iter_outcomes(input_data):
            if isinstance(outcome, MessageRecord):
                if collect:
                    result.records.append(outcome)
                if callback is not None:
                    callback(outcome)
            elif isinstance(outcome, Completion):
                result.status = ExtractionStatus.COMPLETED
                result.add_diagnostic(
                    DiagnosticSeverity.INFO,
                    "Finished",
                    "message_dump_parser",
                    details={"records": outcome.metrics.records_emitted},
                )
            else:
                result.status = outcome.status
                result.error = outcome.error
                self._add_failure_diagnostic(result, outcome)

        result.metrics = self._last_metrics
        return result

    def _add_failure_diagnostic(self, result: ExtractionResult, failure: Failure) -> None:
        error = failure.error
        if error is None:
            result.add_diagnostic(
                DiagnosticSeverity.WARNING, "Extraction cancelled", "message_dump_parser"
            )
            return

        position = getattr(error, "position", None)
        details: Dict[str, Any] = {"error_type": type(error).__name__}
        if isinstance(error, InvalidDocumentError):
            details["reason"] = error.reason
            details["phase"] = error.phase.name if error.phase is not None else None
            details["depth"] = error.depth
        result.add_diagnostic(
            DiagnosticSeverity.ERROR,
            str(error),
            "message_dump_parser",
            position=position.to_dict() if position is not None else None,
            details=details,
        )

    def _record_run(self, status: Optional[ExtractionStatus], metrics: ExtractionMetrics) -> None:
        self._parse_count += 1
        self._records_emitted += metrics.records_emitted
        self._total_processing_time += metrics.processing_time_ms
        if status is ExtractionStatus.COMPLETED:
            self._successful_parses += 1

        self.logger.info(
            "Message extraction finished",
            extra={
                "status": status.name if status else "ABANDONED",
                "records": metrics.records_emitted,
                "tokens": metrics.tokens_processed,
                "processing_time_ms": metrics.processing_time_ms,
            }
        )

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get parser usage statistics."""
        return {
            "total_parses": self._parse_count,
            "successful_parses": self._successful_parses,
            "success_rate": (
                self._successful_parses / self._parse_count
                if self._parse_count > 0 else 0.0
            ),
            "records_emitted": self._records_emitted,
            "total_processing_time_ms": self._total_processing_time,
            "average_processing_time_ms": (
                self._total_processing_time / self._parse_count
                if self._parse_count > 0 else 0.0
            ),
            "correlation_id": self.correlation_id,
        }

    def reset_statistics(self) -> None:
        """Reset parser usage statistics."""
        self._parse_count = 0
        self._successful_parses = 0
        self._records_emitted = 0
        self._total_processing_time = 0.0


def parse(
    input_data: InputType,
    on_record: Union[RecordCallback, Any, None] = None,
    config: Optional[ExtractorConfig] = None,
    diagnostic_sink: Optional[DiagnosticSink] = None
) -> ExtractionResult:
    """Extract message records from any supported input.

    Strings are treated as document content; use :func:`parse_file` or pass a
    :class:`~pathlib.Path` to read a file. An empty or
    whitespace-only document is invalid. With the default backend the status
    is ``INVALID_DOCUMENT`` with the reason "document has no root element".

    Examples:
        >>> result = parse(
        ...     "<FileDump><Message><From>Joe.doe@gmail.com</From>"
        ...     "<Message>Hi Jane</Message></Message></FileDump>")
        >>> result.records == [{"From": "Joe.doe@gmail.com", "Message": "Hi Jane"}]
        True
    """
    parser = MessageDumpParser(config=config, diagnostic_sink=diagnostic_sink)
    return parser.parse(input_data, on_record=on_record)


def parse_string(
    xml_string: str,
    on_record: Union[RecordCallback, Any, None] = None,
    config: Optional[ExtractorConfig] = None,
    diagnostic_sink: Optional[DiagnosticSink] = None
) -> ExtractionResult:
    """Extract message records from a document held in a string."""
    logger = get_logger(__name__, config.correlation_id if config else None, "parse_string")
    logger.debug(
        "Parsing string input",
        extra={
            "content_length": len(xml_string),
            "preview": (
                xml_string[:PREVIEW_LENGTH] + "..."
                if len(xml_string) > PREVIEW_LENGTH else xml_string
            ),
        }
    )
    return parse(xml_string, on_record=on_record, config=config, diagnostic_sink=diagnostic_sink)


def parse_file(
    file_path: Union[str, Path],
    on_record: Union[RecordCallback, Any, None] = None,
    config: Optional[ExtractorConfig] = None,
    diagnostic_sink: Optional[DiagnosticSink] = None
) -> ExtractionResult:
    """Extract message records from a file.

    A missing or unreadable file is reported as a token error in the result.
    """
    path_obj = Path(file_path) if isinstance(file_path, str) else file_path
    return parse(path_obj, on_record=on_record, config=config, diagnostic_sink=diagnostic_sink)


def iter_records(
    input_data: InputType,
    config: Optional[ExtractorConfig] = None,
    diagnostic_sink: Optional[DiagnosticSink] = None
) -> Iterator[MessageRecord]:
    """Yield message records lazily, raising the terminal error if any.

    Examples:
        >>> records = iter_records(
        ...     "<FileDump><Message><From>a@b.c</From>"
        ...     "<Message>Hi</Message></Message></FileDump>")
        >>> [record.sender for record in records]
        ['a@b.c']
    """
    parser = MessageDumpParser(config=config, diagnostic_sink=diagnostic_sink)
    return parser.iter_records(input_data)
