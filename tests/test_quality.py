"""Tests for match quality comparison."""

from decimal import Decimal

from bankrecon.domain.entities import Confidence, InvoiceRecord, LedgerDirection, MatchQuality
from bankrecon.domain.quality import build_match_quality, is_better_match, quality_for_document

from helpers import movement


def quality(confidence=Confidence.MEDIUM, tax_id=False, distance=3.0, exact=True, linked=False):
    return MatchQuality(
        file_id="f",
        confidence=confidence,
        has_tax_id_match=tax_id,
        date_distance=distance,
        is_exact_amount=exact,
        has_linked_payment=linked,
    )


def test_confidence_dominates_other_criteria():
    """Test that a higher confidence wins even when every other criterion is worse."""
    existing = quality(Confidence.LOW, tax_id=True, distance=0.0, exact=True, linked=True)
    candidate = quality(Confidence.HIGH, tax_id=False, distance=10.0, exact=False, linked=False)

    assert is_better_match(existing, candidate)
    assert not is_better_match(candidate, existing)


def test_tax_id_breaks_confidence_tie():
    assert is_better_match(quality(distance=0.0), quality(tax_id=True, distance=9.0))


def test_closer_date_breaks_tie():
    assert is_better_match(quality(distance=5.0), quality(distance=1.0))
    assert not is_better_match(quality(distance=1.0), quality(distance=5.0))


def test_exact_amount_then_linked_payment():
    assert is_better_match(quality(exact=False), quality(exact=True))
    assert is_better_match(quality(linked=False), quality(linked=True))


def test_identical_quality_never_replaces():
    assert not is_better_match(quality(), quality())


def test_unknown_date_is_worst_distance():
    result = build_match_quality(
        file_id="f",
        confidence=Confidence.HIGH,
        document_date="",
        movement_date="2025-03-10",
        document_tax_id="",
        movement_description="",
        has_linked_payment=False,
        is_exact_amount=True,
    )

    assert result.date_distance == float("inf")
    assert not result.has_tax_id_match


def test_quality_for_document_defaults_to_stored_confidence():
    document = InvoiceRecord(
        file_id="f-1",
        issue_date="2025-03-05",
        counterparty_tax_id="30712345671",
        counterparty_name="Proveedor SA",
        total_amount=Decimal("1000"),
        currency="ARS",
        row=2,
        direction=LedgerDirection.RECEIVED,
        linked_payment_id="p-1",
        match_confidence=Confidence.LOW,
    )
    row = movement(2, "10/03/2025", "TRANSFERENCIA 30712345671", debit="1000")

    stored = quality_for_document(document, row)
    overridden = quality_for_document(document, row, Confidence.MEDIUM)

    assert stored.confidence is Confidence.LOW
    assert overridden.confidence is Confidence.MEDIUM
    assert stored.has_tax_id_match
    assert stored.date_distance == 5.0
    assert stored.is_exact_amount
    assert stored.has_linked_payment


def test_quality_for_document_without_stored_confidence_is_high():
    document = InvoiceRecord(
        file_id="f-1",
        issue_date="2025-03-05",
        counterparty_tax_id="",
        counterparty_name="",
        total_amount=Decimal("1"),
        currency="ARS",
        row=2,
        direction=LedgerDirection.ISSUED,
    )

    result = quality_for_document(document, movement(2, "2025-03-05", "X", credit="1"))

    assert result.confidence is Confidence.HIGH
    assert result.date_distance == 0.0
