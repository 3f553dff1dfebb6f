"""Amount parsing utilities."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional
import math
import re

# Default absolute tolerance when comparing amounts (one currency unit)
DEFAULT_AMOUNT_TOLERANCE = Decimal("1")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "1,234.56" (US thousands separator)
    - "1.234,56" (Argentine: dot thousands, comma decimal)
    - "123,45" (comma decimal)
    - "(123.45)" (negative in parentheses)

    When both separators are present the last one is the decimal separator.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    # Remove whitespace
    amount_str = amount_str.strip()

    # Handle parentheses and sign notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]
    if amount_str.startswith("-"):
        is_negative = True
        amount_str = amount_str[1:]

    # Remove currency symbols and inner whitespace
    amount_str = re.sub(r"[$€£¥\s]", "", amount_str)

    last_comma = amount_str.rfind(",")
    last_dot = amount_str.rfind(".")
    if last_comma != -1 and last_dot != -1:
        if last_comma > last_dot:
            amount_str = amount_str.replace(".", "").replace(",", ".")
        else:
            amount_str = amount_str.replace(",", "")
    elif last_comma != -1:
        amount_str = amount_str.replace(",", ".")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Amount is not a finite number: '{amount_str}'")
    return -amount if is_negative else amount


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a raw cell value to a Decimal, or None when empty or invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return parse_amount(text)
    except ValueError:
        return None


def amounts_match(
    first: Optional[Decimal],
    second: Optional[Decimal],
    tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
) -> bool:
    """Check whether two absolute amounts agree within ``tolerance``."""
    if first is None or second is None:
        return False
    return abs(abs(first) - abs(second)) <= tolerance


def amounts_match_cross_currency(
    foreign_amount: Decimal,
    rate: Decimal,
    local_amount: Decimal,
    tolerance_percent: Decimal,
) -> bool:
    """Check a local amount against a foreign amount converted at ``rate``.

    The converted amount is rounded to cents and the local amount must fall
    within ``tolerance_percent`` of it, bounds included.

    Args:
        foreign_amount: Amount in the foreign currency (e.g., a USD invoice total)
        rate: Local currency units per foreign unit
        local_amount: Amount actually moved, in local currency
        tolerance_percent: Allowed deviation, e.g. 5 for 5%
    """
    expected = (abs(foreign_amount) * rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    margin = expected * tolerance_percent / 100
    return expected - margin <= abs(local_amount) <= expected + margin


def format_plain(amount: Optional[Decimal]) -> str:
    """Render an amount in plain notation, so 1000.00 and 1000 agree."""
    if amount is None:
        return ""
    normalized = amount.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")
