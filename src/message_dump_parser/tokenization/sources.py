"""Token source selection.

:func:`open_token_stream` turns any supported input into a lazy sequence of
token events for the configured backend. The sequence always ends with
exactly one :class:`EndOfStream` or :class:`TokenError`; read and decode
failures of the underlying input are reported as token errors too.
"""

from typing import Iterator, Optional

from message_dump_parser.shared import TokenSourceBackend, TokenSourceConfig, get_logger

from .events import TokenError, TokenEvent
from .stream import ChunkDecoder, InputType, iter_raw_chunks
from .tokenizer import XMLTokenizer


def open_token_stream(
    input_data: InputType,
    config: Optional[TokenSourceConfig] = None,
    correlation_id: Optional[str] = None
) -> Iterator[TokenEvent]:
    """Yield token events for ``input_data``.

    Args:
        input_data: Document as str, bytes, Path or file object
        config: Token source configuration (defaults to the built-in tokenizer)
        correlation_id: Optional correlation ID for run tracking

    Yields:
        Token events in document order
    """
    config = config or TokenSourceConfig()
    if config.backend is TokenSourceBackend.LXML:
        return _lxml_events(input_data, config, correlation_id)
    return _builtin_events(input_data, config, correlation_id)


def _builtin_events(
    input_data: InputType,
    config: TokenSourceConfig,
    correlation_id: Optional[str]
) -> Iterator[TokenEvent]:
    logger = get_logger(__name__, correlation_id, "token_source")
    tokenizer = XMLTokenizer(correlation_id=correlation_id)
    decoder = ChunkDecoder(config.encoding)
    try:
        for chunk in iter_raw_chunks(input_data, config.chunk_size):
            for event in tokenizer.feed(decoder.decode(chunk)):
                yield event
            if tokenizer.failed:
                return
        tail = decoder.finish()
        if tail:
            yield from tokenizer.feed(tail)
            if tokenizer.failed:
                return
    except UnicodeDecodeError as e:
        logger.warning("Input is not valid text", extra={"encoding": config.encoding})
        yield TokenError(f"Input is not valid {config.encoding}: {e.reason}")
        return
    except OSError as e:
        logger.warning("Input could not be read", extra={"error": str(e)})
        yield TokenError(f"Could not read input: {e}")
        return
    yield from tokenizer.close()


def _lxml_events(
    input_data: InputType,
    config: TokenSourceConfig,
    correlation_id: Optional[str]
) -> Iterator[TokenEvent]:
    from .lxml_source import LxmlTokenSource

    logger = get_logger(__name__, correlation_id, "token_source")
    source = LxmlTokenSource(encoding=config.encoding, correlation_id=correlation_id)
    try:
        for chunk in iter_raw_chunks(input_data, config.chunk_size):
            yield from source.feed(chunk)
            if source.failed:
                return
    except OSError as e:
        logger.warning("Input could not be read", extra={"error": str(e)})
        yield TokenError(f"Could not read input: {e}")
        return
    yield from source.close()
