"""Incremental XML tokenizer producing tag and text events.

This module implements the default token source: a character-level state
machine that accepts input in arbitrary chunks and turns it into
:class:`OpenTag`, :class:`CloseTag` and :class:`Text` events. Text and
attribute values are reported verbatim; entity references are not decoded.

Comments, processing instructions and markup declarations are skipped. CDATA
section content is reported as text. Any malformed tag syntax produces a
single :class:`TokenError` after which the tokenizer refuses further input.
"""

from enum import Enum, auto
from typing import Iterable, Iterator, List, Optional, Tuple

from message_dump_parser.shared import get_logger

from .events import (
    CloseTag,
    EndOfStream,
    OpenTag,
    Text,
    TokenError,
    TokenEvent,
    TokenPosition,
)

COMMENT_OPEN = "--"
CDATA_OPEN = "[CDATA["
COMMENT_CLOSE = "-->"
CDATA_CLOSE = "]]>"
PI_CLOSE = "?>"
UNICODE_START_OFFSET = 0x80


class TokenizerState(Enum):
    """State machine states for tokenization."""

    TEXT_CONTENT = auto()       # Between tags
    TAG_OPENING = auto()        # Just read <
    TAG_NAME = auto()           # Reading start tag name
    BEFORE_ATTR_NAME = auto()   # Whitespace inside a start tag
    ATTR_NAME = auto()          # Reading attribute name
    AFTER_ATTR_NAME = auto()    # Whitespace between name and =
    ATTR_VALUE_START = auto()   # After =, expecting a quote
    ATTR_VALUE_QUOTED = auto()  # Inside quoted attribute value
    AFTER_ATTR_VALUE = auto()   # Just closed a quoted value
    SELF_CLOSING = auto()       # Read / inside a start tag
    TAG_CLOSING = auto()        # Just read </
    CLOSE_TAG_NAME = auto()     # Reading end tag name
    CLOSE_TAG_END = auto()      # Whitespace after end tag name
    MARKUP_START = auto()       # Just read <!, deciding what follows
    COMMENT_CONTENT = auto()    # Inside <!-- ... -->
    CDATA_CONTENT = auto()      # Inside <![CDATA[ ... ]]>
    DECLARATION = auto()        # Inside <!DOCTYPE ...> and friends
    PI_CONTENT = auto()         # Inside <? ... ?>
    FAILED = auto()             # A token error was reported


def is_name_start_char(char: str) -> bool:
    """Check whether ``char`` may start an XML name."""
    return char.isalpha() or char in "_:" or ord(char) >= UNICODE_START_OFFSET


def is_name_char(char: str) -> bool:
    """Check whether ``char`` may continue an XML name."""
    return is_name_start_char(char) or char.isdigit() or char in "-."


class XMLTokenizer:
    """Chunk-at-a-time XML tokenizer.

    Examples:
        >>> tokenizer = XMLTokenizer()
        >>> events = tokenizer.feed('<FileDump><Message>')
        >>> [event.name for event in events]
        ['FileDump', 'Message']
        >>> events = tokenizer.feed('hi</Message></FileDump>') + tokenizer.close()
        >>> [type(event).__name__ for event in events]
        ['Text', 'CloseTag', 'CloseTag', 'EndOfStream']
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        """Initialize the tokenizer.

        Args:
            correlation_id: Optional correlation ID for run tracking
        """
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "xml_tokenizer")
        self.reset()

    def reset(self) -> None:
        """Reset tokenizer state for a new document."""
        self.state = TokenizerState.TEXT_CONTENT
        self.line = 1
        self.column = 1
        self.offset = 0
        self.closed = False
        self._events: List[TokenEvent] = []
        self._buffer: List[str] = []
        self._buffer_start: Optional[TokenPosition] = None
        self._tag_start: Optional[TokenPosition] = None
        self._tag_name = ""
        self._attr_name = ""
        self._attributes: List[Tuple[str, str]] = []
        self._quote_char = ""
        self._markup = ""

    @property
    def failed(self) -> bool:
        """True once a token error has been reported."""
        return self.state is TokenizerState.FAILED

    def feed(self, chunk: str) -> List[TokenEvent]:
        """Tokenize the next chunk of input.

        Args:
            chunk: Decoded characters following the previously fed ones

        Returns:
            Events completed by this chunk. Text pending at the end of the chunk
            is reported immediately, so one run of text may span several
            :class:`Text` events.
        """
        if self.closed:
            raise RuntimeError("Tokenizer is closed")
        if self.failed:
            return []

        index = 0
        length = len(chunk)
        while index < length and not self.failed:
            if self.state is TokenizerState.TEXT_CONTENT:
                index = self._scan_text(chunk, index)
                continue
            char = chunk[index]
            self._process_character(char)
            self._update_position(char)
            index += 1

        if self.state is TokenizerState.TEXT_CONTENT:
            self._flush_text()
        return self._drain()

    def close(self) -> List[TokenEvent]:
        """Signal end of input.

        Returns:
            Remaining events, ending with :class:`EndOfStream` or a
            :class:`TokenError` when input stopped inside markup.
        """
        if self.closed:
            return []
        self.closed = True
        if self.failed:
            return self._drain()

        if self.state is TokenizerState.TEXT_CONTENT:
            self._flush_text()
            self._events.append(EndOfStream(position=self._current_position()))
        else:
            self._fail(
                f"Unexpected end of input in {self.state.name.lower()}",
                self._tag_start,
            )
        return self._drain()

    def tokenize_stream(self, chunks: Iterable[str]) -> Iterator[TokenEvent]:
        """Yield events for a sequence of chunks, finishing with end of input."""
        for chunk in chunks:
            yield from self.feed(chunk)
            if self.failed:
                break
        yield from self.close()

    def _drain(self) -> List[TokenEvent]:
        events = self._events
        self._events = []
        return events

    def _current_position(self) -> TokenPosition:
        return TokenPosition(self.line, self.column, self.offset)

    def _update_position(self, char: str) -> None:
        self.offset += 1
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1

    def _scan_text(self, chunk: str, index: int) -> int:
        """Consume text up to the next ``<`` in bulk."""
        end = chunk.find("<", index)
        stop = len(chunk) if end == -1 else end
        if stop > index:
            text = chunk[index:stop]
            if self._buffer_start is None:
                self._buffer_start = self._current_position()
            self._buffer.append(text)
            newlines = text.count("\n")
            self.offset += len(text)
            if newlines:
                self.line += newlines
                self.column = len(text) - text.rfind("\n")
            else:
                self.column += len(text)
        if end == -1:
            return stop

        self._flush_text()
        self._tag_start = self._current_position()
        self.state = TokenizerState.TAG_OPENING
        self._update_position("<")
        return end + 1

    def _flush_text(self) -> None:
        if self._buffer:
            self._events.append(Text("".join(self._buffer), position=self._buffer_start))
        self._buffer = []
        self._buffer_start = None

    def _fail(self, reason: str, position: Optional[TokenPosition] = None) -> None:
        position = position or self._current_position()
        self.logger.debug(
            "Token error",
            extra={"reason": reason, "line": position.line, "column": position.column},
        )
        self._events.append(TokenError(reason, position=position))
        self.state = TokenizerState.FAILED

    def _process_character(self, char: str) -> None:
        state = self.state
        if state is TokenizerState.TAG_OPENING:
            self._process_tag_opening(char)
        elif state is TokenizerState.TAG_NAME:
            self._process_tag_name(char)
        elif state is TokenizerState.BEFORE_ATTR_NAME:
            self._process_before_attr_name(char)
        elif state is TokenizerState.ATTR_NAME:
            self._process_attr_name(char)
        elif state is TokenizerState.AFTER_ATTR_NAME:
            self._process_after_attr_name(char)
        elif state is TokenizerState.ATTR_VALUE_START:
            self._process_attr_value_start(char)
        elif state is TokenizerState.ATTR_VALUE_QUOTED:
            self._process_attr_value_quoted(char)
        elif state is TokenizerState.AFTER_ATTR_VALUE:
            self._process_after_attr_value(char)
        elif state is TokenizerState.SELF_CLOSING:
            self._process_self_closing(char)
        elif state is TokenizerState.TAG_CLOSING:
            self._process_tag_closing(char)
        elif state is TokenizerState.CLOSE_TAG_NAME:
            self._process_close_tag_name(char)
        elif state is TokenizerState.CLOSE_TAG_END:
            self._process_close_tag_end(char)
        elif state is TokenizerState.MARKUP_START:
            self._process_markup_start(char)
        elif state in (
            TokenizerState.COMMENT_CONTENT,
            TokenizerState.CDATA_CONTENT,
            TokenizerState.PI_CONTENT,
        ):
            self._process_delimited_content(char)
        elif state is TokenizerState.DECLARATION:
            if char == ">":
                self.state = TokenizerState.TEXT_CONTENT

    def _process_tag_opening(self, char: str) -> None:
        if char == "/":
            self.state = TokenizerState.TAG_CLOSING
        elif char == "!":
            self._markup = ""
            self.state = TokenizerState.MARKUP_START
        elif char == "?":
            self._markup = ""
            self.state = TokenizerState.PI_CONTENT
        elif is_name_start_char(char):
            self._tag_name = char
            self._attributes = []
            self.state = TokenizerState.TAG_NAME
        else:
            self._fail(f"Invalid character {char!r} after '<'")

    def _process_tag_name(self, char: str) -> None:
        if is_name_char(char):
            self._tag_name += char
        elif char.isspace():
            self.state = TokenizerState.BEFORE_ATTR_NAME
        elif char == ">":
            self._emit_open_tag()
        elif char == "/":
            self.state = TokenizerState.SELF_CLOSING
        else:
            self._fail(f"Invalid character {char!r} in tag name {self._tag_name!r}")

    def _process_before_attr_name(self, char: str) -> None:
        if char.isspace():
            return
        if char == ">":
            self._emit_open_tag()
        elif char == "/":
            self.state = TokenizerState.SELF_CLOSING
        elif is_name_start_char(char):
            self._attr_name = char
            self.state = TokenizerState.ATTR_NAME
        else:
            self._fail(f"Invalid character {char!r} in tag {self._tag_name!r}")

    def _process_attr_name(self, char: str) -> None:
        if is_name_char(char):
            self._attr_name += char
        elif char == "=":
            self.state = TokenizerState.ATTR_VALUE_START
        elif char.isspace():
            self.state = TokenizerState.AFTER_ATTR_NAME
        else:
            self._fail(f"Attribute {self._attr_name!r} has no value")

    def _process_after_attr_name(self, char: str) -> None:
        if char.isspace():
            return
        if char == "=":
            self.state = TokenizerState.ATTR_VALUE_START
        else:
            self._fail(f"Attribute {self._attr_name!r} has no value")

    def _process_attr_value_start(self, char: str) -> None:
        if char.isspace():
            return
        if char in "\"'":
            self._quote_char = char
            self._markup = ""
            self.state = TokenizerState.ATTR_VALUE_QUOTED
        else:
            self._fail(f"Unquoted value for attribute {self._attr_name!r}")

    def _process_attr_value_quoted(self, char: str) -> None:
        if char == self._quote_char:
            if any(name == self._attr_name for name, _ in self._attributes):
                self._fail(f"Duplicate attribute {self._attr_name!r}")
                return
            self._attributes.append((self._attr_name, self._markup))
            self._markup = ""
            self.state = TokenizerState.AFTER_ATTR_VALUE
        elif char == "<":
            self._fail(f"'<' in value of attribute {self._attr_name!r}")
        else:
            self._markup += char

    def _process_after_attr_value(self, char: str) -> None:
        if char.isspace():
            self.state = TokenizerState.BEFORE_ATTR_NAME
        elif char == ">":
            self._emit_open_tag()
        elif char == "/":
            self.state = TokenizerState.SELF_CLOSING
        else:
            self._fail(f"Missing whitespace after attribute {self._attr_name!r}")

    def _process_self_closing(self, char: str) -> None:
        if char != ">":
            self._fail(f"Expected '>' after '/' in tag {self._tag_name!r}")
            return
        self._emit_open_tag()
        self._events.append(CloseTag(self._tag_name, position=self._tag_start))

    def _process_tag_closing(self, char: str) -> None:
        if is_name_start_char(char):
            self._tag_name = char
            self.state = TokenizerState.CLOSE_TAG_NAME
        else:
            self._fail(f"Invalid character {char!r} after '</'")

    def _process_close_tag_name(self, char: str) -> None:
        if is_name_char(char):
            self._tag_name += char
        elif char.isspace():
            self.state = TokenizerState.CLOSE_TAG_END
        elif char == ">":
            self._emit_close_tag()
        else:
            self._fail(f"Invalid character {char!r} in end tag {self._tag_name!r}")

    def _process_close_tag_end(self, char: str) -> None:
        if char.isspace():
            return
        if char == ">":
            self._emit_close_tag()
        else:
            self._fail(f"Invalid character {char!r} in end tag {self._tag_name!r}")

    def _process_markup_start(self, char: str) -> None:
        self._markup += char
        if self._markup == COMMENT_OPEN:
            self._markup = ""
            self.state = TokenizerState.COMMENT_CONTENT
        elif self._markup == CDATA_OPEN:
            self._markup = ""
            self.state = TokenizerState.CDATA_CONTENT
        elif not (COMMENT_OPEN.startswith(self._markup) or CDATA_OPEN.startswith(self._markup)):
            # DOCTYPE and other declarations
            self.state = TokenizerState.TEXT_CONTENT if char == ">" else TokenizerState.DECLARATION

    def _process_delimited_content(self, char: str) -> None:
        self._markup += char
        if self.state is TokenizerState.COMMENT_CONTENT:
            terminator = COMMENT_CLOSE
        elif self.state is TokenizerState.CDATA_CONTENT:
            terminator = CDATA_CLOSE
        else:
            terminator = PI_CLOSE
        if not self._markup.endswith(terminator):
            return

        if self.state is TokenizerState.CDATA_CONTENT:
            content = self._markup[:-len(terminator)]
            if content:
                self._events.append(Text(content, position=self._tag_start))
        self._markup = ""
        self.state = TokenizerState.TEXT_CONTENT

    def _emit_open_tag(self) -> None:
        self._events.append(
            OpenTag(self._tag_name, tuple(self._attributes), position=self._tag_start)
        )
        self._attributes = []
        self.state = TokenizerState.TEXT_CONTENT

    def _emit_close_tag(self) -> None:
        self._events.append(CloseTag(self._tag_name, position=self._tag_start))
        self.state = TokenizerState.TEXT_CONTENT


def tokenize(text: str, correlation_id: Optional[str] = None) -> List[TokenEvent]:
    """Tokenize a complete document held in memory.

    Args:
        text: Complete XML document
        correlation_id: Optional correlation ID for run tracking

    Returns:
        All events, ending with :class:`EndOfStream` or :class:`TokenError`
    """
    tokenizer = XMLTokenizer(correlation_id=correlation_id)
    return list(tokenizer.tokenize_stream([text]))
