"""Record sinks receiving completed message records.

Any object with an ``emit(record)`` method can be used as a sink; the
classes here cover collection in memory, JSON-lines output and adapting a
plain callable.
"""

import json
from abc import ABC, abstractmethod
from typing import Callable, List, TextIO

from message_dump_parser.extraction import MessageRecord


class RecordSink(ABC):
    """Destination for completed records."""

    @abstractmethod
    def emit(self, record: MessageRecord) -> None:
        """Store one completed record."""

    def close(self) -> None:
        """Release resources held by the sink."""


class InMemorySink(RecordSink):
    """Sink that keeps every record in a list."""

    def __init__(self) -> None:
        self.records: List[MessageRecord] = []

    def emit(self, record: MessageRecord) -> None:
        self.records.append(record)


class JSONLinesSink(RecordSink):
    """Sink writing one JSON object per record to a text stream.

    The stream is not closed by the sink unless ``close_stream`` is set.
    """

    def __init__(self, stream: TextIO, close_stream: bool = False) -> None:
        self.stream = stream
        self.close_stream = close_stream
        self.records_written = 0

    def emit(self, record: MessageRecord) -> None:
        self.stream.write(json.dumps(record.to_dict(), ensure_ascii=False))
        self.stream.write("\n")
        self.records_written += 1

    def close(self) -> None:
        self.stream.flush()
        if self.close_stream:
            self.stream.close()


class CallbackSink(RecordSink):
    """Sink forwarding records to a callable."""

    def __init__(self, callback: Callable[[MessageRecord], None]) -> None:
        self.callback = callback

    def emit(self, record: MessageRecord) -> None:
        self.callback(record)
