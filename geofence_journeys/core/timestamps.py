"""
Timestamp Normalization

Converts the timestamp shapes that show up in geofencing rows into Unix
timestamps (float seconds).

Handles:
- Unix timestamps (int/float/Decimal)
- datetime / date objects
- ISO-8601 strings (trailing 'Z' accepted)
- PostgreSQL-style strings ("2024-01-15 10:30:00.123456", optionally with a
  timezone suffix, which is stripped)

Each shape has its own small parser. The parsers are tried in order and the
first non-None result wins. Values no parser can represent (out-of-range
numbers, dates outside the platform's epoch range) give None.
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Tuple

TimestampParser = Callable[[Any], Optional[float]]

# Raised by float() and datetime.timestamp() for values out of range
_RANGE_ERRORS = (OverflowError, ValueError, OSError)

# Formats tried after the timezone suffix has been removed (most specific first)
SQL_TIMESTAMP_FORMATS = (
    '%Y-%m-%d %H:%M:%S.%f',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%dT%H:%M:%S.%f',
    '%Y-%m-%dT%H:%M:%S',
)

# Date/time body followed by an optional zone suffix ("Z", "+05:30", " -0500", ...)
_SQL_TIMESTAMP_RE = re.compile(
    r'^(?P<body>\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2})'
    r'(?:\.(?P<fraction>\d+))?'
    r'\s*(?:Z|[+-]\d{2}(?::?\d{2})?)?$'
)


def _parse_number(value: Any) -> Optional[float]:
    # bool is an int subclass but never a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    try:
        result = float(value)
    except _RANGE_ERRORS:
        return None
    # NaN and infinity are not points in time
    if not math.isfinite(result):
        return None
    return result


def _parse_datetime(value: Any) -> Optional[float]:
    try:
        if isinstance(value, datetime):
            return value.timestamp()
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day).timestamp()
    except _RANGE_ERRORS:
        return None
    return None


def _parse_iso_string(value: Any) -> Optional[float]:
    if not isinstance(value, str):
        return None
    timestamp_clean = value.strip()
    if not timestamp_clean:
        return None
    if timestamp_clean.endswith('Z'):
        timestamp_clean = timestamp_clean[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(timestamp_clean).timestamp()
    except _RANGE_ERRORS:
        return None


def _parse_sql_string(value: Any) -> Optional[float]:
    """
    Parse PostgreSQL-style timestamps, ignoring any timezone suffix.

    The offset is dropped rather than applied, so "10:00:00+05:30" and
    "10:00:00Z" produce the same value.
    """
    if not isinstance(value, str):
        return None
    match = _SQL_TIMESTAMP_RE.match(value.strip())
    if not match:
        return None

    timestamp_for_parse = match.group('body')
    fraction = match.group('fraction')
    if fraction:
        # strptime's %f takes at most 6 digits
        timestamp_for_parse = f"{timestamp_for_parse}.{fraction[:6]}"

    for fmt in SQL_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(timestamp_for_parse, fmt).timestamp()
        except _RANGE_ERRORS:
            continue
    return None


TIMESTAMP_PARSERS: Tuple[TimestampParser, ...] = (
    _parse_number,
    _parse_datetime,
    _parse_iso_string,
    _parse_sql_string,
)


def normalize_timestamp(timestamp_value: Any) -> Optional[float]:
    """
    Convert a timestamp in any supported format to a Unix timestamp.

    Args:
        timestamp_value: Timestamp as number, datetime/date or string

    Returns:
        Unix timestamp as float, or None if the value is missing or no
        parser understands it. Callers decide whether to log.
    """
    if timestamp_value is None:
        return None

    for parser in TIMESTAMP_PARSERS:
        result = parser(timestamp_value)
        if result is not None:
            return result
    return None
