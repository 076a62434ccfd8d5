"""Token sources for message dump extraction.

This module turns raw document input into a stream of structural events
consumed by the message state machine.

Key Components:
    XMLTokenizer: Incremental built-in tokenizer
    LxmlTokenSource: Strict token source backed by lxml (imported on demand)
    open_token_stream: Backend selection for any supported input
    OpenTag, CloseTag, Text, TokenError, EndOfStream: Token events
"""

from .events import (
    Attributes,
    CloseTag,
    EndOfStream,
    EventKind,
    OpenTag,
    Text,
    TokenError,
    TokenEvent,
    TokenPosition,
)
from .sources import open_token_stream
from .stream import ChunkDecoder, InputType, iter_raw_chunks, iter_text_chunks
from .tokenizer import TokenizerState, XMLTokenizer, tokenize

__all__ = [
    "Attributes",
    "ChunkDecoder",
    "CloseTag",
    "EndOfStream",
    "EventKind",
    "InputType",
    "OpenTag",
    "Text",
    "TokenError",
    "TokenEvent",
    "TokenPosition",
    "TokenizerState",
    "XMLTokenizer",
    "iter_raw_chunks",
    "iter_text_chunks",
    "open_token_stream",
    "tokenize",
]
