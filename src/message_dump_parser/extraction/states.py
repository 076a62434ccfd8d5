"""Pure transition function of the message state machine.

The machine walks the token stream of a message dump::

    <FileDump>
      <Message>
        <From>Joe.doe@gmail.com</From>
        <Message>Hi Jane</Message>
      </Message>
      ...
    </FileDump>

It tracks the nesting depth and one of four phases. Tags found inside a field
value are not interpreted; they are written into the field as escaped text
until the depth returns to the field's sanitize boundary.

:func:`transition` never mutates its input. It returns a :class:`Step`
holding the next state plus at most one emitted record, error or completion
signal.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import FrozenSet, Optional, Tuple

from message_dump_parser.shared.config import (
    DEFAULT_FIELD_TAGS,
    DEFAULT_RECORD_TAG,
    DEFAULT_ROOT_TAG,
)
from message_dump_parser.tokenization import (
    CloseTag,
    EndOfStream,
    OpenTag,
    Text,
    TokenError,
    TokenEvent,
)

from .errors import InvalidDocumentError, MessageDumpError, TokenSourceError
from .records import MessageRecord
from .sanitize import escape_close_tag, escape_open_tag

Fields = Tuple[Tuple[str, str], ...]


class Phase(Enum):
    """Phases of the message state machine."""

    ZERO = auto()              # Outside any record
    MESSAGE = auto()           # Inside a record, between fields
    MESSAGE_FIELD = auto()     # Inside a field, reading plain text
    MESSAGE_SANITIZE = auto()  # Inside foreign markup within a field


@dataclass(frozen=True)
class Schema:
    """Tag names that carry structure in a message dump."""

    root_tag: str = DEFAULT_ROOT_TAG
    record_tag: str = DEFAULT_RECORD_TAG
    field_tags: FrozenSet[str] = frozenset(DEFAULT_FIELD_TAGS)

    @classmethod
    def from_config(cls, config) -> "Schema":
        return cls(
            root_tag=config.root_tag,
            record_tag=config.record_tag,
            field_tags=frozenset(config.field_tags),
        )


DEFAULT_SCHEMA = Schema()


@dataclass(frozen=True)
class MachineState:
    """Complete state of the machine between two events.

    Attributes:
        phase: Current phase
        depth: Number of currently open elements
        boundary: Depth of the open field's content; foreign markup has closed
            back out when a close tag brings the depth back to this value
        field_name: Tag name of the open field
        fields: Fields committed to the record under construction
        accumulator: Text of the open field, including escaped foreign markup
        root_opened: The document root element has been seen
        root_closed: The document root element has been closed
        halted: An error or completion ended the run
    """

    phase: Phase = Phase.ZERO
    depth: int = 0
    boundary: int = 0
    field_name: Optional[str] = None
    fields: Fields = ()
    accumulator: str = ""
    root_opened: bool = False
    root_closed: bool = False
    halted: bool = False


@dataclass(frozen=True)
class Step:
    """Outcome of feeding one event to the machine."""

    state: MachineState
    note: str = ""
    record: Optional[MessageRecord] = None
    error: Optional[MessageDumpError] = None
    completed: bool = False


def _commit(fields: Fields, name: str, value: str) -> Fields:
    # A repeated field keeps its first position and takes the latest value
    if any(key == name for key, _ in fields):
        return tuple((key, value if key == name else old) for key, old in fields)
    return fields + ((name, value),)


def _fail(state: MachineState, event: TokenEvent, reason: str) -> Step:
    error = InvalidDocumentError(reason, event=event, phase=state.phase, depth=state.depth)
    return Step(replace(state, halted=True), note=f"State: {state.phase.name}, {reason}", error=error)


def transition(
    state: MachineState,
    event: TokenEvent,
    schema: Schema = DEFAULT_SCHEMA
) -> Step:
    """Compute the step taken by the machine for one event.

    Args:
        state: State before the event
        event: Next token event
        schema: Structural tag names

    Returns:
        Step with the next state and any emitted record, error or completion
    """
    if state.halted:
        return Step(state, note="Ignored event after the run ended")
    if isinstance(event, OpenTag):
        return _on_open_tag(state, event, schema)
    if isinstance(event, CloseTag):
        return _on_close_tag(state, event, schema)
    if isinstance(event, Text):
        return _on_text(state, event)
    if isinstance(event, TokenError):
        error = TokenSourceError(event.reason, position=event.position)
        return Step(
            replace(state, halted=True),
            note=f"Token source error: {event.reason}",
            error=error,
        )
    if isinstance(event, EndOfStream):
        return _on_end_of_stream(state, event)
    raise TypeError(f"Unsupported token event: {type(event).__name__}")


def _on_open_tag(state: MachineState, event: OpenTag, schema: Schema) -> Step:
    name = event.name
    phase = state.phase
    depth = state.depth + 1

    if phase is Phase.ZERO:
        if state.depth == 0:
            if name != schema.root_tag:
                return _fail(state, event, f"unexpected root element <{name}>")
            if state.root_closed:
                return _fail(state, event, f"second root element <{name}>")
            return Step(
                replace(state, depth=depth, root_opened=True),
                note=f"State: ZERO, found <{name}> root",
            )
        if name != schema.record_tag:
            return _fail(state, event, f"unexpected element <{name}> outside a record")
        return Step(
            replace(state, phase=Phase.MESSAGE, depth=depth, fields=()),
            note=f"State: ZERO, found <{name}> tag",
        )

    if phase is Phase.MESSAGE:
        if name not in schema.field_tags:
            return _fail(state, event, f"unexpected field <{name}>")
        return Step(
            replace(
                state,
                phase=Phase.MESSAGE_FIELD,
                depth=depth,
                boundary=state.depth + 1,
                field_name=name,
                accumulator="",
            ),
            note=f'State: MESSAGE, found message tag field "{name}"',
        )

    # Foreign markup inside a field value
    return Step(
        replace(
            state,
            phase=Phase.MESSAGE_SANITIZE,
            depth=depth,
            accumulator=state.accumulator + escape_open_tag(name, event.attributes),
        ),
        note=f'State: {phase.name}, tag: "{name}"',
    )


def _on_close_tag(state: MachineState, event: CloseTag, schema: Schema) -> Step:
    name = event.name
    phase = state.phase
    depth = state.depth - 1
    if depth < 0:
        return _fail(state, event, f"end tag </{name}> without an open element")

    if phase is Phase.ZERO:
        if name != schema.root_tag:
            return _fail(state, event, f"unexpected end tag </{name}>")
        return Step(
            replace(state, depth=depth, root_closed=True),
            note=f"State: ZERO, closed <{name}> root",
        )

    if phase is Phase.MESSAGE:
        if name != schema.record_tag:
            return _fail(state, event, f"end tag </{name}> does not close the record")
        record = MessageRecord(state.fields)
        return Step(
            replace(state, phase=Phase.ZERO, depth=depth, fields=()),
            note="State: MESSAGE, parsed message",
            record=record,
        )

    if phase is Phase.MESSAGE_FIELD:
        if name != state.field_name:
            return _fail(
                state, event, f"end tag </{name}> does not close field <{state.field_name}>"
            )
        return Step(
            replace(
                state,
                phase=Phase.MESSAGE,
                depth=depth,
                field_name=None,
                fields=_commit(state.fields, name, state.accumulator),
                accumulator="",
            ),
            note=f"State: MESSAGE_FIELD, accumulator: {state.accumulator}",
        )

    next_phase = Phase.MESSAGE_FIELD if depth == state.boundary else Phase.MESSAGE_SANITIZE
    return Step(
        replace(
            state,
            phase=next_phase,
            depth=depth,
            accumulator=state.accumulator + escape_close_tag(name),
        ),
        note=f"State: MESSAGE_SANITIZE, accumulator: {state.accumulator}",
    )


def _on_text(state: MachineState, event: Text) -> Step:
    if state.phase in (Phase.MESSAGE_FIELD, Phase.MESSAGE_SANITIZE):
        return Step(replace(state, accumulator=state.accumulator + event.content))
    return Step(state)


def _on_end_of_stream(state: MachineState, event: EndOfStream) -> Step:
    if state.phase is not Phase.ZERO or state.depth != 0:
        return _fail(state, event, "document ended inside an open element")
    if not state.root_opened:
        return _fail(state, event, "document has no root element")
    return Step(replace(state, halted=True), note="Finished", completed=True)
