"""Serialization of foreign tags found inside field values.

Foreign tags are written back into the field as text with entity-escaped
angle brackets. Attributes keep their order and are written as
``key="value"`` without escaping the value, so a value containing a double
quote produces an ambiguous reconstruction. Stored fields depend on this exact
format, so the limitation is kept.
"""

from typing import Iterable, Tuple

LT = "&lt;"
GT = "&gt;"


def escape_open_tag(name: str, attributes: Iterable[Tuple[str, str]] = ()) -> str:
    """Reconstruct a start tag as escaped text.

    Examples:
        >>> escape_open_tag("a", [("href", "x"), ("id", "1")])
        '&lt;a href="x" id="1"&gt;'
    """
    rendered = "".join(f' {key}="{value}"' for key, value in attributes)
    return f"{LT}{name}{rendered}{GT}"


def escape_close_tag(name: str) -> str:
    """Reconstruct an end tag as escaped text.

    Examples:
        >>> escape_close_tag("script")
        '&lt;/script&gt;'
    """
    return f"{LT}/{name}{GT}"
