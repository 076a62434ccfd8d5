"""Token source backed by lxml's event-driven parser target interface.

lxml checks well-formedness as it goes, so mismatched tags and unclosed
documents surface as token errors instead of reaching the state machine.
lxml decodes entity references before calling the target, so the collector
escapes character data again. Text and attribute values then reach the state
machine in the same escaped form the built-in tokenizer reports.
"""

from typing import Iterable, Iterator, List, Mapping, Optional, Union

from lxml import etree

from message_dump_parser.shared import get_logger

from .events import CloseTag, EndOfStream, OpenTag, Text, TokenError, TokenEvent


def escape_text(data: str) -> str:
    """Escape decoded character data back to its markup-safe form.

    Examples:
        >>> escape_text("<script> & co")
        '&lt;script&gt; &amp; co'
    """
    return data.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def escape_attribute(value: str) -> str:
    """Escape a decoded attribute value back to its markup-safe form."""
    return value.replace("&", "&amp;").replace("<", "&lt;")


class _EventCollector:
    """Parser target that records callbacks as token events."""

    def __init__(self) -> None:
        self.events: List[TokenEvent] = []

    def start(self, tag: str, attrib: Mapping[str, str]) -> None:
        self.events.append(OpenTag(
            tag, tuple((key, escape_attribute(value)) for key, value in attrib.items())
        ))

    def end(self, tag: str) -> None:
        self.events.append(CloseTag(tag))

    def data(self, data: str) -> None:
        self.events.append(Text(escape_text(data)))

    def close(self) -> None:
        return None

    def drain(self) -> List[TokenEvent]:
        events = self.events
        self.events = []
        return events


class LxmlTokenSource:
    """Feed-driven token source using :class:`lxml.etree.XMLParser`.

    Examples:
        >>> source = LxmlTokenSource()
        >>> events = list(source.tokenize_stream([b'<FileDump></FileDump>']))
        >>> [type(event).__name__ for event in events]
        ['OpenTag', 'CloseTag', 'EndOfStream']
    """

    def __init__(self, encoding: str = "utf-8", correlation_id: Optional[str] = None) -> None:
        """Initialize the lxml token source.

        Args:
            encoding: Encoding of binary chunks; overrides the XML declaration
            correlation_id: Optional correlation ID for run tracking
        """
        self.encoding = encoding
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "lxml_token_source")
        self._collector = _EventCollector()
        self._parser: Optional[etree.XMLParser] = None
        self._text_input = False
        self.failed = False

    def _ensure_parser(self, chunk: Union[str, bytes]) -> etree.XMLParser:
        if self._parser is None:
            self._text_input = isinstance(chunk, str)
            self._parser = etree.XMLParser(
                target=self._collector,
                encoding="utf-8" if self._text_input else self.encoding,
                resolve_entities=False,
                no_network=True,
            )
        return self._parser

    def feed(self, chunk: Union[str, bytes]) -> List[TokenEvent]:
        """Feed one chunk and return the events it completed."""
        if self.failed:
            return []
        parser = self._ensure_parser(chunk)
        data = chunk.encode("utf-8") if isinstance(chunk, str) else chunk
        try:
            parser.feed(data)
        except etree.XMLSyntaxError as e:
            return self._fail(e)
        return self._collector.drain()

    def close(self) -> List[TokenEvent]:
        """Finish parsing and return the remaining events."""
        if self.failed:
            return []
        parser = self._ensure_parser(b"")
        try:
            parser.close()
        except etree.XMLSyntaxError as e:
            return self._fail(e)
        return self._collector.drain() + [EndOfStream()]

    def tokenize_stream(self, chunks: Iterable[Union[str, bytes]]) -> Iterator[TokenEvent]:
        """Yield events for a sequence of chunks, finishing with end of input."""
        for chunk in chunks:
            yield from self.feed(chunk)
            if self.failed:
                return
        yield from self.close()

    def _fail(self, error: etree.XMLSyntaxError) -> List[TokenEvent]:
        self.failed = True
        self.logger.debug("lxml reported a syntax error", extra={"reason": str(error)})
        # Events completed before the error are still delivered in order
        return self._collector.drain() + [TokenError(str(error))]
