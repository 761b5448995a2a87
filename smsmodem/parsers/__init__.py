"""
Line parsers for modem output.

Provides type-safe parsing of modem lines into structured data.
"""

from .base import ResponseParser, IntValueParser, CommaSeparatedParser, strip_prefix
from .sms import (
    CMTIParser,
    CMGSParser,
    CDSParser,
    CMGRHeaderParser,
    parse_timestamp,
    parse_phone_number,
    normalize_phone_number,
)

__all__ = [
    "ResponseParser",
    "IntValueParser",
    "CommaSeparatedParser",
    "strip_prefix",
    "CMTIParser",
    "CMGSParser",
    "CDSParser",
    "CMGRHeaderParser",
    "parse_timestamp",
    "parse_phone_number",
    "normalize_phone_number",
]
