"""Utility functions for bankrecon."""

from bankrecon.utils.date_parser import parse_date, normalize_spreadsheet_date
from bankrecon.utils.amount_parser import parse_amount, to_decimal, amounts_match
from bankrecon.utils.tax_id import extract_cuit, is_valid_cuit

__all__ = [
    "parse_date",
    "normalize_spreadsheet_date",
    "parse_amount",
    "to_decimal",
    "amounts_match",
    "extract_cuit",
    "is_valid_cuit",
]
