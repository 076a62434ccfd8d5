"""pandas integration for extracted message records."""

from typing import Any, Iterable, List, Optional, Sequence

from message_dump_parser.extraction import BODY_FIELD, SENDER_FIELD, MessageRecord

from .result import ExtractionResult

DEFAULT_COLUMNS = (SENDER_FIELD, BODY_FIELD)


def records_to_dataframe(
    records: Iterable[MessageRecord],
    columns: Optional[Sequence[str]] = None
) -> Any:
    """Convert message records to a pandas DataFrame.

    One row per record in input order. Columns default to ``From`` and
    ``Message`` followed by any other field names in order of first
    appearance; fields missing from a record are ``None``.

    Args:
        records: Records to convert
        columns: Explicit column order; fields not listed are dropped

    Returns:
        pandas DataFrame

    Examples:
        >>> from message_dump_parser import parse_string
        >>> result = parse_string(
        ...     "<FileDump><Message><From>a@b.c</From>"
        ...     "<Message>Hi</Message></Message></FileDump>")
        >>> records_to_dataframe(result.records).shape
        (1, 2)
    """
    import pandas as pd

    rows = [record.to_dict() for record in records]
    if columns is None:
        names: List[str] = list(DEFAULT_COLUMNS)
        for row in rows:
            names.extend(name for name in row if name not in names)
        columns = names

    return pd.DataFrame(
        [[row.get(name) for name in columns] for row in rows],
        columns=list(columns),
    )


def result_to_dataframe(result: ExtractionResult) -> Any:
    """Convert the records of an extraction result to a pandas DataFrame.

    The frame carries the run status in ``DataFrame.attrs["status"]`` so a
    partial extraction is distinguishable from a complete one.
    """
    df = records_to_dataframe(result.records)
    df.attrs["status"] = result.status.name if result.status else None
    df.attrs["correlation_id"] = result.correlation_id
    return df
