"""Match quality comparison used to decide whether a match should be replaced."""

from typing import Optional

from bankrecon.domain.entities import (
    Confidence,
    LedgerDocument,
    MatchQuality,
    Movement,
)
from bankrecon.utils.date_parser import days_between, try_parse_date

CONFIDENCE_RANK = {
    Confidence.HIGH: 3,
    Confidence.MEDIUM: 2,
    Confidence.LOW: 1,
}


def is_better_match(existing: MatchQuality, candidate: MatchQuality) -> bool:
    """Return True if ``candidate`` should replace ``existing``.

    Criteria, in priority order:
    1. Higher confidence
    2. Tax id found in the movement description
    3. Closer date
    4. Exact amount
    5. Linked payment

    A candidate equal on every criterion never replaces the existing match,
    so repeated runs do not flip between equivalent documents.
    """
    existing_rank = CONFIDENCE_RANK[existing.confidence]
    candidate_rank = CONFIDENCE_RANK[candidate.confidence]
    if candidate_rank != existing_rank:
        return candidate_rank > existing_rank

    if candidate.has_tax_id_match != existing.has_tax_id_match:
        return candidate.has_tax_id_match

    if candidate.date_distance != existing.date_distance:
        return candidate.date_distance < existing.date_distance

    if candidate.is_exact_amount != existing.is_exact_amount:
        return candidate.is_exact_amount

    if candidate.has_linked_payment != existing.has_linked_payment:
        return candidate.has_linked_payment

    return False


def build_match_quality(
    file_id: str,
    confidence: Confidence,
    document_date: str,
    movement_date: str,
    document_tax_id: str,
    movement_description: str,
    has_linked_payment: bool,
    is_exact_amount: bool,
) -> MatchQuality:
    """Build match quality from the raw attributes of a document and a movement.

    Unparseable dates give an infinite date distance (worst possible).
    """
    date_distance = days_between(try_parse_date(document_date), try_parse_date(movement_date))
    has_tax_id_match = bool(document_tax_id) and document_tax_id in (movement_description or "")
    return MatchQuality(
        file_id=file_id,
        confidence=confidence,
        has_tax_id_match=has_tax_id_match,
        date_distance=date_distance,
        is_exact_amount=is_exact_amount,
        has_linked_payment=has_linked_payment,
    )


def quality_for_document(
    document: LedgerDocument,
    movement: Movement,
    confidence: Optional[Confidence] = None,
) -> MatchQuality:
    """Build match quality for a ledger document matched to ``movement``.

    Without an explicit confidence the document's stored match confidence is
    used, defaulting to HIGH. The exact-amount flag is always set: it cannot be
    recomputed for an existing match, so both sides of a comparison carry it.
    """
    if confidence is None:
        confidence = document.match_confidence or Confidence.HIGH
    return build_match_quality(
        file_id=document.file_id,
        confidence=confidence,
        document_date=document.document_date,
        movement_date=movement.date,
        document_tax_id=document.counterparty_tax_id,
        movement_description=movement.description,
        has_linked_payment=document.has_linked_payment,
        is_exact_amount=True,
    )
