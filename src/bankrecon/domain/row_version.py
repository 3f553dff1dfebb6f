"""Content fingerprint of a movement row, used as an optimistic-concurrency token."""

import hashlib

from bankrecon.domain.entities import Movement
from bankrecon.utils.amount_parser import format_plain


def compute_row_version(row: Movement) -> str:
    """Return a 16-character hex fingerprint of a movement's fields.

    Covers date, description, debit, credit, matched document id and detail,
    in that order. Missing values and empty strings hash the same.
    """
    data = "|".join(
        [
            row.date or "",
            row.description or "",
            format_plain(row.debit),
            format_plain(row.credit),
            row.matched_file_id or "",
            row.detail or "",
        ]
    )
    return hashlib.md5(data.encode("utf-8")).hexdigest()[:16]
