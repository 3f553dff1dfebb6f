"""Date parsing utilities."""

import math
import re
from datetime import date, timedelta
from typing import Any, Optional

from dateutil import parser as date_parser

# Spreadsheet day 0 (serial date epoch)
SPREADSHEET_EPOCH = date(1899, 12, 30)

_ISO_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DAY_FIRST_PATTERN = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
# Serial day counts as text, e.g. cells loaded from CSV ("45717" or "45717.5")
_SERIAL_PATTERN = re.compile(r"^\d{1,5}(\.\d+)?$")


def parse_date(date_str: str) -> date:
    """Parse a ledger or bank date string into a date object.

    Supports:
    - ISO dates: "2024-01-15", "2024-1-5"
    - Day-first dates: "15/01/2024", "15-01-2024"
    - Anything else dateutil understands, read day-first

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Empty date string")

    date_str = date_str.strip()

    match = _ISO_PATTERN.match(date_str)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return date(year, month, day)

    match = _DAY_FIRST_PATTERN.match(date_str)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return date(year, month, day)

    try:
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def try_parse_date(date_str: Optional[str]) -> Optional[date]:
    """Parse a date string, returning None when it is missing or invalid."""
    if not date_str:
        return None
    try:
        return parse_date(date_str)
    except ValueError:
        return None


def serial_to_date_string(serial: float) -> str:
    """Convert a spreadsheet serial day count to an ISO date string (YYYY-MM-DD).

    Serial 0 is 1899-12-30. Fractional parts (time of day) are dropped.
    """
    return (SPREADSHEET_EPOCH + timedelta(days=int(serial))).isoformat()


def normalize_spreadsheet_date(value: Any) -> str:
    """Normalize a raw date cell to a string.

    Numeric cells, and text holding only a serial day count, are serial dates
    and become ISO strings; everything else is returned as stripped text.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and not math.isfinite(value):
        return ""
    if isinstance(value, (int, float)):
        return serial_to_date_string(value)
    text = str(value).strip()
    if _SERIAL_PATTERN.match(text):
        return serial_to_date_string(float(text))
    return text


def days_between(first: Optional[date], second: Optional[date]) -> float:
    """Absolute distance in whole days, or infinity if either date is unknown."""
    if first is None or second is None:
        return float("inf")
    return float(abs((second - first).days))


def is_within_days(reference: date, other: date, days_before: int, days_after: int) -> bool:
    """Check that ``other`` falls within a window of days around ``reference``.

    Args:
        reference: Reference date (e.g., invoice date)
        other: Date to check (e.g., bank movement date)
        days_before: Maximum days before ``reference`` (inclusive)
        days_after: Maximum days after ``reference`` (inclusive)
    """
    diff = (other - reference).days
    return -days_before <= diff <= days_after
