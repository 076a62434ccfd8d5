"""Exceptions raised for documents that cannot be extracted."""

from typing import Any, Optional

from message_dump_parser.tokenization import TokenPosition

INVALID_DOCUMENT_MESSAGE = "Invalid xml format"


class MessageDumpError(Exception):
    """Base exception for extraction failures."""


class InvalidDocumentError(MessageDumpError):
    """The token stream does not follow the message dump grammar.

    ``str(error)`` is always :data:`INVALID_DOCUMENT_MESSAGE`; the specific
    violation is kept in :attr:`reason` for diagnostics.
    """

    def __init__(
        self,
        reason: str = "",
        event: Optional[Any] = None,
        phase: Optional[Any] = None,
        depth: Optional[int] = None
    ) -> None:
        super().__init__(INVALID_DOCUMENT_MESSAGE)
        self.reason = reason
        self.event = event
        self.phase = phase
        self.depth = depth

    @property
    def position(self) -> Optional[TokenPosition]:
        return getattr(self.event, "position", None)


class TokenSourceError(MessageDumpError):
    """Malformed input reported by the token source, forwarded unchanged."""

    def __init__(self, reason: str, position: Optional[TokenPosition] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.position = position
