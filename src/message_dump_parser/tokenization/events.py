"""Token events delivered by a token source to the message state machine."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Mapping, Optional, Tuple, Union

Attributes = Tuple[Tuple[str, str], ...]


class EventKind(Enum):
    """Kinds of events a token source can produce."""

    OPEN_TAG = auto()
    CLOSE_TAG = auto()
    TEXT = auto()
    TOKEN_ERROR = auto()
    END_OF_STREAM = auto()


@dataclass(frozen=True)
class TokenPosition:
    """Position of an event in the decoded character stream."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")

    def to_dict(self) -> dict:
        return {"line": self.line, "column": self.column, "offset": self.offset}


def _freeze_attributes(
    attributes: Union[Mapping[str, str], Iterable[Tuple[str, str]], None]
) -> Attributes:
    if attributes is None:
        return ()
    if isinstance(attributes, Mapping):
        return tuple((str(key), str(value)) for key, value in attributes.items())
    return tuple((str(key), str(value)) for key, value in attributes)


@dataclass(frozen=True)
class OpenTag:
    """Start tag with its attributes in document order."""

    name: str
    attributes: Attributes = ()
    position: Optional[TokenPosition] = None

    kind = EventKind.OPEN_TAG

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tag name cannot be empty")
        object.__setattr__(self, "attributes", _freeze_attributes(self.attributes))


@dataclass(frozen=True)
class CloseTag:
    """End tag."""

    name: str
    position: Optional[TokenPosition] = None

    kind = EventKind.CLOSE_TAG

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tag name cannot be empty")


@dataclass(frozen=True)
class Text:
    """Character content between tags, exactly as it appeared in the input."""

    content: str
    position: Optional[TokenPosition] = None

    kind = EventKind.TEXT


@dataclass(frozen=True)
class TokenError:
    """Malformed input reported by the token source."""

    reason: str
    position: Optional[TokenPosition] = None

    kind = EventKind.TOKEN_ERROR


@dataclass(frozen=True)
class EndOfStream:
    """Input exhausted without a token-level error."""

    position: Optional[TokenPosition] = None

    kind = EventKind.END_OF_STREAM


TokenEvent = Union[OpenTag, CloseTag, Text, TokenError, EndOfStream]
