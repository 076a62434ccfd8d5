"""Stateful driver around the pure message transition function.

:class:`MessageStateMachine` owns the current :class:`MachineState`, feeds
events through :func:`transition`, keeps run metrics, and in diagnostic mode
reports every step to a caller-supplied sink.
"""

import logging
from typing import Callable, Iterable, Iterator, Optional

from message_dump_parser.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ExtractionMetrics,
    ExtractorConfig,
    get_logger,
)
from message_dump_parser.tokenization import OpenTag, TokenEvent

from .states import DEFAULT_SCHEMA, MachineState, Phase, Schema, Step, transition

DiagnosticSink = Callable[[DiagnosticEntry], None]

COMPONENT = "message_state_machine"
# Accumulator snapshots longer than this are shortened when displayed
SNAPSHOT_LIMIT = 200


def shorten_snapshot(snapshot: str, limit: int = SNAPSHOT_LIMIT) -> str:
    """Shorten an accumulator snapshot for log and console output.

    Examples:
        >>> shorten_snapshot("x" * 5, limit=3)
        'xxx...'
    """
    if len(snapshot) > limit:
        return snapshot[:limit] + "..."
    return snapshot


class MessageStateMachine:
    """Consume token events one at a time and emit message records.

    Examples:
        >>> from message_dump_parser.tokenization import tokenize
        >>> machine = MessageStateMachine()
        >>> steps = machine.run(tokenize(
        ...     "<FileDump><Message><From>a@b.c</From>"
        ...     "<Message>Hi</Message></Message></FileDump>"))
        >>> [step.record for step in steps if step.record]
        [MessageRecord({'From': 'a@b.c', 'Message': 'Hi'})]
        >>> machine.completed
        True
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        diagnostic_sink: Optional[DiagnosticSink] = None
    ) -> None:
        """Initialize the state machine.

        Args:
            config: Extractor configuration; tag names and diagnostic mode
            diagnostic_sink: Receives one entry per step when diagnostic mode is
                enabled in the configuration. Defaults to debug logging.
        """
        self.config = config or ExtractorConfig()
        self.schema = Schema.from_config(self.config) if config else DEFAULT_SCHEMA
        self.correlation_id = self.config.correlation_id
        self.logger = get_logger(__name__, self.correlation_id, COMPONENT)
        self.diagnostics_enabled = self.config.diagnostics
        self.diagnostic_sink = diagnostic_sink or self._log_diagnostic
        self.reset()

    def reset(self) -> None:
        """Return to the initial state for a new document."""
        self.state = MachineState()
        self.metrics = ExtractionMetrics()
        self.last_step: Optional[Step] = None

    @property
    def halted(self) -> bool:
        return self.state.halted

    @property
    def completed(self) -> bool:
        return self.last_step is not None and self.last_step.completed

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def process(self, event: TokenEvent) -> Step:
        """Feed one event.

        Raises:
            RuntimeError: If the run already ended with an error or completion
        """
        if self.state.halted:
            raise RuntimeError("State machine has halted; call reset() first")

        previous = self.state
        step = transition(previous, event, self.schema)
        self.state = step.state
        self.last_step = step
        self._update_metrics(previous, event, step)

        if self.diagnostics_enabled:
            self._report(previous, event, step)
        if step.error is not None:
            self.logger.error(
                "Extraction failed",
                extra={
                    "error": str(step.error),
                    "reason": getattr(step.error, "reason", ""),
                    "phase": previous.phase.name,
                    "depth": previous.depth,
                },
            )
        return step

    def run(self, events: Iterable[TokenEvent]) -> Iterator[Step]:
        """Feed events until the run ends, yielding every step."""
        for event in events:
            step = self.process(event)
            yield step
            if step.state.halted:
                return

    def _update_metrics(self, previous: MachineState, event: TokenEvent, step: Step) -> None:
        metrics = self.metrics
        metrics.tokens_processed += 1
        metrics.max_depth = max(metrics.max_depth, step.state.depth)
        if step.record is not None:
            metrics.records_emitted += 1
        if previous.phase is Phase.MESSAGE_FIELD and step.state.phase is Phase.MESSAGE:
            metrics.fields_committed += 1
        if isinstance(event, OpenTag) and step.state.phase is Phase.MESSAGE_SANITIZE:
            metrics.sanitized_tags += 1

    def _report(self, previous: MachineState, event: TokenEvent, step: Step) -> None:
        position = getattr(event, "position", None)
        try:
            entry = DiagnosticEntry(
                severity=DiagnosticSeverity.ERROR if step.error else DiagnosticSeverity.DEBUG,
                message=step.note or f"State: {previous.phase.name}, {type(event).__name__}",
                component=COMPONENT,
                position=position.to_dict() if position else None,
                details={
                    "event": type(event).__name__,
                    "from_phase": previous.phase.name,
                    "to_phase": step.state.phase.name,
                    "depth": step.state.depth,
                    "boundary": step.state.boundary,
                    "accumulator": step.state.accumulator,
                },
                correlation_id=self.correlation_id,
            )
            self.diagnostic_sink(entry)
        except Exception:
            # Diagnostics are best-effort and must not change the outcome
            self.logger.warning("Diagnostic sink failed", exc_info=True)

    def _log_diagnostic(self, entry: DiagnosticEntry) -> None:
        if self.logger.is_enabled_for(logging.DEBUG):
            details = dict(entry.details)
            details["accumulator"] = shorten_snapshot(details.get("accumulator", ""))
            self.logger.debug(entry.message, extra=details)
