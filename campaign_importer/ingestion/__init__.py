"""Loading, format detection and value coercion for campaign export files.

The parsers live in their own modules (``campaign_parser``, ``leads_parser``,
``hybrid_parser``) and are dispatched by :mod:`.pipeline`.
"""

from .detector import detect_format, is_hybrid_marker
from .loaders import RawTable, load_table, read_csv_text
from .values import ResponseType, classify_response, normalise_header, parse_date

__all__ = [
    "RawTable",
    "ResponseType",
    "classify_response",
    "detect_format",
    "is_hybrid_marker",
    "load_table",
    "normalise_header",
    "parse_date",
    "read_csv_text",
]
