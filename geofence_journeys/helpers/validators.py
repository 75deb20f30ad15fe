"""
Validation Helpers

Utility functions for validating journey tool input (SQL text and params).
"""

import re
from typing import Any, Optional

_LEADING_COMMENTS_RE = re.compile(r'^\s*(?:--[^\n]*\n|/\*.*?\*/)\s*', re.DOTALL)


def is_select_query(sql: Optional[str]) -> bool:
    """
    Check that SQL is a read query (SELECT or WITH ... SELECT).

    Args:
        sql: SQL text

    Returns:
        True if the statement starts with SELECT/WITH after leading comments
    """
    if not sql:
        return False
    sql_clean = sql.strip()
    while True:
        stripped = _LEADING_COMMENTS_RE.sub('', sql_clean, count=1)
        if stripped == sql_clean:
            break
        sql_clean = stripped
    sql_upper = sql_clean.upper()
    return sql_upper.startswith('SELECT') or sql_upper.startswith('WITH')


def validate_extra_hours(value: Any) -> Optional[float]:
    """
    Coerce extraJourneyTimeLimit to hours as float.

    Args:
        value: Number, numeric string, or None/"" for "not provided"

    Returns:
        Hours as float, or None

    Raises:
        ValueError: If the value is not numeric or is negative
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"extraJourneyTimeLimit must be a number of hours, got {value!r}")
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"extraJourneyTimeLimit must be a number of hours, got {value!r}") from None
    if hours < 0:
        raise ValueError(f"extraJourneyTimeLimit cannot be negative, got {value!r}")
    return hours


def validate_facility_id(facility_id: Any) -> Optional[str]:
    """
    Normalize an optional facility ID filter.

    Returns:
        Trimmed facility ID, or None if empty/missing
    """
    if facility_id is None:
        return None
    facility_id_str = str(facility_id).strip()
    return facility_id_str or None
