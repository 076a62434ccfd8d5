"""Message extraction engine.

This module provides the state machine that turns token events into message
records, escaping any markup nested inside field values.

Key Components:
    transition: Pure transition function over an immutable MachineState
    MessageStateMachine: Stateful driver with metrics and diagnostics
    MessageRecord: Immutable record emitted per Message element
    InvalidDocumentError, TokenSourceError: Terminal extraction failures
"""

from .errors import (
    INVALID_DOCUMENT_MESSAGE,
    InvalidDocumentError,
    MessageDumpError,
    TokenSourceError,
)
from .machine import DiagnosticSink, MessageStateMachine, shorten_snapshot
from .records import BODY_FIELD, SENDER_FIELD, MessageRecord
from .sanitize import escape_close_tag, escape_open_tag
from .states import (
    DEFAULT_SCHEMA,
    MachineState,
    Phase,
    Schema,
    Step,
    transition,
)

__all__ = [
    "BODY_FIELD",
    "DEFAULT_SCHEMA",
    "DiagnosticSink",
    "INVALID_DOCUMENT_MESSAGE",
    "InvalidDocumentError",
    "MachineState",
    "MessageDumpError",
    "MessageRecord",
    "MessageStateMachine",
    "Phase",
    "SENDER_FIELD",
    "Schema",
    "Step",
    "TokenSourceError",
    "escape_close_tag",
    "escape_open_tag",
    "shorten_snapshot",
    "transition",
]
