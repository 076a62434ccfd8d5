"""Message Dump Parser.

Extracts message records from XML message dumps: a ``FileDump`` wrapper
holding ``Message`` elements, each with a ``From`` sender and a ``Message``
body. Markup nested inside a field is kept as literal, entity-escaped text.

Progressive API Disclosure:
- Level 1: Simple functions - parse(), parse_string(), parse_file(), iter_records()
- Level 2: Configured parser - MessageDumpParser class
- Level 3: State machine - MessageStateMachine and the pure transition()
"""

__version__ = "0.1.0"
__author__ = "Message Dump Parser Team"

# Progressive API disclosure - Level 1: Simple functions
# Progressive API disclosure - Level 2: Configured parser
from .api import (
    ExtractionResult,
    ExtractionStatus,
    MessageDumpParser,
    iter_records,
    parse,
    parse_file,
    parse_string,
    records_to_dataframe,
)

# Level 3: Extraction engine
from .extraction import (
    InvalidDocumentError,
    MessageDumpError,
    MessageRecord,
    MessageStateMachine,
    TokenSourceError,
    transition,
)

# Configuration classes for advanced usage
from .shared.config import ExtractorConfig, TokenSourceBackend, TokenSourceConfig

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple parsing functions
    "parse",
    "parse_string",
    "parse_file",
    "iter_records",
    "records_to_dataframe",

    # Level 2: Configured parser
    "MessageDumpParser",

    # Level 3: Extraction engine
    "MessageStateMachine",
    "transition",

    # Result objects and errors
    "ExtractionResult",
    "ExtractionStatus",
    "MessageRecord",
    "MessageDumpError",
    "InvalidDocumentError",
    "TokenSourceError",

    # Configuration classes for advanced usage
    "ExtractorConfig",
    "TokenSourceBackend",
    "TokenSourceConfig",
]
