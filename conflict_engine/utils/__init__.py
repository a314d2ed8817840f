"""Utility functions for the conflict engine.

Re-exports the text, parsing and datetime helpers so that imports like
`from ..utils import normalize_text` work as expected.
"""

from .text_cleaning import (  # noqa: F401
    normalize_key,
    normalize_text,
    sanitize_llm_text,
    strip_think_blocks,
)
from .datetime_utils import (  # noqa: F401
    days_between_spans,
    easter_sunday,
    get_current_timestamp,
    parse_date,
    parse_datetime,
)
from .llm_parsing import extract_structured_json  # noqa: F401

__all__ = [
    "strip_think_blocks",
    "sanitize_llm_text",
    "normalize_text",
    "normalize_key",
    "get_current_timestamp",
    "parse_date",
    "parse_datetime",
    "days_between_spans",
    "easter_sunday",
    "extract_structured_json",
]
