"""Immutable message record handed to sinks."""

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

SENDER_FIELD = "From"
BODY_FIELD = "Message"


class MessageRecord(Mapping[str, str]):
    """Read-only mapping of field tag name to field value.

    Keys keep the order in which the fields were first committed. A record
    compares equal to any mapping with the same items, including a plain dict.

    Examples:
        >>> record = MessageRecord({"From": "Joe.doe@gmail.com", "Message": "Hi Jane"})
        >>> record.sender, record.body
        ('Joe.doe@gmail.com', 'Hi Jane')
        >>> record == {"From": "Joe.doe@gmail.com", "Message": "Hi Jane"}
        True
    """

    __slots__ = ("_fields",)

    def __init__(
        self,
        fields: Union[Mapping[str, str], Iterable[Tuple[str, str]], None] = None
    ) -> None:
        self._fields: Dict[str, str] = dict(fields or {})

    def __getitem__(self, key: str) -> str:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __hash__(self) -> int:
        return hash(tuple(self._fields.items()))

    def __repr__(self) -> str:
        return f"MessageRecord({self._fields!r})"

    @property
    def sender(self) -> Optional[str]:
        """Value of the ``From`` field."""
        return self._fields.get(SENDER_FIELD)

    @property
    def body(self) -> Optional[str]:
        """Value of the ``Message`` field."""
        return self._fields.get(BODY_FIELD)

    def to_dict(self) -> Dict[str, Any]:
        """Return a mutable copy of the fields."""
        return dict(self._fields)
