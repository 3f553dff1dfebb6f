"""Argentine tax id (CUIT/CUIL) helpers."""

import re
from typing import Optional

_WEIGHTS = (5, 4, 3, 2, 7, 6, 5, 4, 3, 2)

_EXPLICIT_PATTERN = re.compile(r"CUI[TL][:\s]*(\d{2}[-\s]?\d{8}[-\s]?\d)", re.IGNORECASE)
_SEPARATED_PATTERN = re.compile(r"(\d{2})[-\s](\d{8})[-\s](\d)")
_PLAIN_PATTERN = re.compile(r"\b(\d{11})\b")


def is_valid_cuit(cuit: str) -> bool:
    """Validate an 11-digit CUIT/CUIL including its check digit.

    Dashes and spaces are ignored.
    """
    if not cuit:
        return False
    cleaned = re.sub(r"[-\s]", "", cuit)
    if len(cleaned) != 11 or not cleaned.isdigit():
        return False

    digits = [int(c) for c in cleaned]
    checksum = 11 - sum(d * w for d, w in zip(digits, _WEIGHTS)) % 11
    if checksum == 11:
        checksum = 0
    elif checksum == 10:
        checksum = 9
    return checksum == digits[10]


def extract_cuit(text: str) -> Optional[str]:
    """Extract the first valid CUIT/CUIL from free text.

    Recognizes an explicit "CUIT:" prefix, the XX-XXXXXXXX-X layout, and plain
    11-digit numbers (only accepted when the check digit is valid).
    """
    if not text:
        return None

    match = _EXPLICIT_PATTERN.search(text)
    if match:
        cleaned = re.sub(r"[-\s]", "", match.group(1))
        if is_valid_cuit(cleaned):
            return cleaned

    match = _SEPARATED_PATTERN.search(text)
    if match:
        cleaned = "".join(match.groups())
        if is_valid_cuit(cleaned):
            return cleaned

    for candidate in _PLAIN_PATTERN.findall(text):
        if is_valid_cuit(candidate):
            return candidate

    return None
