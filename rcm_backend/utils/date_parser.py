"""Date parsing utilities for claim and remittance records."""

from __future__ import annotations

from datetime import date, datetime

# Reasonable date bounds for healthcare claims
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100


def parse_flexible_date(value: str | date | None) -> date | None:
    """Parse a calendar date from multiple common formats.

    Supports the following formats:
    - ISO 8601: YYYY-MM-DD (e.g., 2024-01-15)
    - US format: MM/DD/YYYY (e.g., 01/15/2024)
    - Compact: YYYYMMDD (e.g., 20240115)

    ``date`` and ``datetime`` inputs are returned as plain dates. Years
    outside 1900-2100 are treated as unparseable.

    Examples:
        >>> parse_flexible_date("2024-01-15")
        datetime.date(2024, 1, 15)
        >>> parse_flexible_date("01/15/2024")
        datetime.date(2024, 1, 15)
        >>> parse_flexible_date("2024-02-30") is None
        True
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    formats = [
        "%Y-%m-%d",  # ISO 8601
        "%m/%d/%Y",  # US format
        "%Y%m%d",  # Compact
    ]

    for fmt in formats:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            # strptime raises ValueError for invalid dates like Feb 30
            continue
        if parsed.year < MIN_VALID_YEAR or parsed.year > MAX_VALID_YEAR:
            continue
        return parsed.date()

    return None


def require_date(value: str | date | None, field_name: str) -> date:
    """Parse a mandatory date, raising ``ValueError`` when it is missing or invalid."""
    parsed = parse_flexible_date(value)
    if parsed is None:
        raise ValueError(f"Invalid or missing date for {field_name}: {value!r}")
    return parsed
