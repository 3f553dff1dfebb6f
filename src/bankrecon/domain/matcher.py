"""Bank movement matching against the ledger.

The reconciliation engine only depends on the ``Matcher`` protocol. The
``DefaultMatcher`` implements it with the rules used for Argentine bank
statements: bank fees and card payments are recognized by their statement
text, then payments and invoices are matched by amount, date window and
counterparty tax id (or keywords, for direct debits). Salary receipts and
customer withholdings are taken into account as well.
"""

import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Protocol

from bankrecon.domain.entities import (
    Confidence,
    InvoiceRecord,
    LedgerData,
    LedgerDirection,
    MatchCandidate,
    MatchKind,
    Movement,
    PaymentRecord,
    SalaryReceiptRecord,
    WithholdingRecord,
)
from bankrecon.logging_setup import get_logger
from bankrecon.utils.amount_parser import (
    DEFAULT_AMOUNT_TOLERANCE,
    amounts_match,
    amounts_match_cross_currency,
)
from bankrecon.utils.date_parser import days_between, is_within_days, try_parse_date
from bankrecon.utils.tax_id import extract_cuit

_logger = get_logger("bankrecon.matcher")

# Payments must be within +-1 day of the movement
PAYMENT_DATE_RANGE = 1

# Invoices may be up to 5 days after or 30 days before the movement
INVOICE_DATE_RANGE_BEFORE = 5
INVOICE_DATE_RANGE_AFTER = 30

MIN_KEYWORD_MATCH_SCORE = 2

# Withholdings count towards an invoice up to 90 days after it was issued
WITHHOLDING_DATE_RANGE = 90

# Allowed deviation, in percent, of a USD invoice converted to ARS
DEFAULT_CROSS_CURRENCY_TOLERANCE_PERCENT = Decimal("5")

BANK_FEE_DESCRIPTION = "Gastos bancarios"
CARD_PAYMENT_DESCRIPTION = "Pago de tarjeta de credito"

BANK_FEE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^IMPUESTO LEY",
        r"^IMP\.LEY 25413",
        r"^LEY NRO 25\.4",
        r"^COMISION MAN",
        r"^COM MANT MENS",
        r"^COMISION MOV",
        r"^COMISION TRA",
        r"^COMI TRANSFERENCIA",
        r"^COM\.TRANSF",
        r"^COMISION POR TRANSFERENCIA",
        r"^IVA TASA GRA",
        r"^IVA TASA GENERAL",
        r"^COMISION GES",
        r"^GP-COM\.OPAGO",
        r"^GP-IVA TASA",
    )
]

CARD_PAYMENT_PATTERNS = [re.compile(r"^PAGO TARJETA\s+\d+", re.IGNORECASE)]

DIRECT_DEBIT_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"DEBITO\s*DI\b",
        r"DEBITO\s*DIRECTO",
        r"DEBITO\s*AUTOMATICO",
        r"DEB\.?\s*AUT",
    )
]

# Bank jargon ignored by keyword matching
BANK_JARGON = {
    "DEBITO", "CREDITO", "TRANSFERENCIA", "TRANSFERENCI", "PAGO", "COBRO",
    "OG", "DI", "AUT", "AUTO", "DIR", "REF", "NRO", "NUM", "CTA", "CBU",
}


class Matcher(Protocol):
    """Capability the reconciliation engine uses to match one movement."""

    def match_debit(self, movement: Movement, ledger: LedgerData) -> MatchCandidate:
        ...

    def match_credit(self, movement: Movement, ledger: LedgerData) -> MatchCandidate:
        ...


def is_bank_fee(description: str) -> bool:
    return bool(description) and any(p.search(description) for p in BANK_FEE_PATTERNS)


def is_card_payment(description: str) -> bool:
    return bool(description) and any(p.search(description) for p in CARD_PAYMENT_PATTERNS)


def is_direct_debit(description: str) -> bool:
    return bool(description) and any(p.search(description) for p in DIRECT_DEBIT_PATTERNS)


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text.upper())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def extract_keyword_tokens(description: str) -> list[str]:
    """Meaningful uppercase tokens of a statement line.

    Numbers, words shorter than three letters and bank jargon are dropped, and
    digit/letter runs are split ("20751CUOTA" gives "CUOTA").
    """
    if not description:
        return []
    tokens = []
    for part in re.split(r"[\s\-.]+", description.upper()):
        tokens.extend(re.findall(r"\d+|[^\d]+", part))
    return [
        _strip_accents(token)
        for token in tokens
        if len(token) >= 3 and not token.isdigit() and token not in BANK_JARGON
    ]


def keyword_match_score(description: str, counterparty_name: str, concept: str = "") -> int:
    """Score how well statement keywords match a counterparty name and concept."""
    tokens = extract_keyword_tokens(description)
    if not tokens:
        return 0
    name = _strip_accents(counterparty_name or "")
    concept = _strip_accents(concept or "")
    score = 0
    for token in tokens:
        if token in name:
            score += 2
        if concept and token in concept:
            score += 2
    return score


@dataclass(frozen=True)
class _Scored:
    document: object
    has_tax_id: bool
    keyword_score: int
    date_diff: float
    reasons: tuple[str, ...]
    withholdings: tuple[WithholdingRecord, ...] = ()

    def sort_key(self):
        # Exact amounts go before withholding-adjusted ones
        return (not self.has_tax_id, -self.keyword_score, self.date_diff, bool(self.withholdings))


class DefaultMatcher:
    """Rule-based matcher over the parsed ledger.

    Priority for debits:
    0. Bank fees, then credit card payments
    1. Payment whose linked invoice is in the ledger
    2. Direct invoice match by tax id (or keywords for direct debits)
    3. Salary receipt with the same net amount
    4. Payment without a linked invoice, flagged for review
    5. No match

    Credits follow the same order without card payments and salary receipts;
    an issued invoice may also match the credit plus the withholdings its
    customer certified.

    USD invoices are compared in ARS using the sell rate of their issue date
    from ``exchange_rates``. Without a rate for that date they never match.
    """

    def __init__(
        self,
        tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
        exchange_rates: Optional[Mapping[date, Decimal]] = None,
        cross_currency_tolerance_percent: Decimal = DEFAULT_CROSS_CURRENCY_TOLERANCE_PERCENT,
    ):
        self.tolerance = tolerance
        self.exchange_rates = exchange_rates if exchange_rates is not None else {}
        self.cross_currency_tolerance_percent = cross_currency_tolerance_percent
        self._missing_rates: set[date] = set()

    def match_debit(self, movement: Movement, ledger: LedgerData) -> MatchCandidate:
        if is_bank_fee(movement.description):
            return self._fixed(MatchKind.BANK_FEE, BANK_FEE_DESCRIPTION, "Bank fee pattern detected")
        if not movement.is_debit:
            return self._no_match("No debit amount")
        if is_card_payment(movement.description):
            return self._fixed(
                MatchKind.CARD_PAYMENT, CARD_PAYMENT_DESCRIPTION, "Credit card payment pattern detected"
            )
        return self._match(movement, movement.debit, ledger, LedgerDirection.RECEIVED)

    def match_credit(self, movement: Movement, ledger: LedgerData) -> MatchCandidate:
        if is_bank_fee(movement.description):
            return self._fixed(MatchKind.BANK_FEE, BANK_FEE_DESCRIPTION, "Bank fee pattern detected")
        if not movement.is_credit:
            return self._no_match("No credit amount")
        return self._match(movement, movement.credit, ledger, LedgerDirection.ISSUED)

    def _match(
        self,
        movement: Movement,
        amount: Decimal,
        ledger: LedgerData,
        direction: LedgerDirection,
    ) -> MatchCandidate:
        movement_date = try_parse_date(movement.date)
        if movement_date is None:
            return self._no_match("No valid date in movement")

        tax_id = extract_cuit(movement.description)
        if direction is LedgerDirection.ISSUED:
            invoices, payments = ledger.issued_invoices, ledger.received_payments
            withholdings = ledger.withholdings
        else:
            invoices, payments = ledger.received_invoices, ledger.sent_payments
            withholdings = ()

        matching_payments = self._find_payments(amount, movement_date, tax_id, payments)
        for scored in matching_payments:
            payment = scored.document
            if not payment.linked_invoice_id:
                continue
            invoice = ledger.find_invoice(payment.linked_invoice_id, direction)
            if invoice is None:
                _logger.warning(
                    "matcher:linked_invoice_missing payment=%s linked_invoice=%s",
                    payment.file_id,
                    payment.linked_invoice_id,
                )
                continue
            confidence = Confidence.MEDIUM if invoice.currency == "USD" else Confidence.HIGH
            return MatchCandidate(
                kind=MatchKind.PAYMENT_INVOICE,
                description=self._invoice_description(invoice),
                matched_file_id=payment.file_id,
                confidence=confidence,
                reasons=scored.reasons + ("Payment linked to invoice",),
                extracted_tax_id=tax_id,
            )

        matching_invoices = self._find_invoices(
            amount, movement_date, tax_id, movement.description, invoices, withholdings
        )
        if matching_invoices:
            best = matching_invoices[0]
            invoice = best.document
            # Withholdings are linked by tax id, so they count as a tax id match
            has_tax_id = best.has_tax_id or bool(best.withholdings)
            if invoice.currency == "USD":
                confidence = Confidence.MEDIUM if has_tax_id else Confidence.LOW
            else:
                confidence = Confidence.HIGH if has_tax_id else Confidence.MEDIUM
            description = self._invoice_description(invoice)
            if best.withholdings:
                description += " (con retencion)"
            return MatchCandidate(
                kind=MatchKind.DIRECT_INVOICE,
                description=description,
                matched_file_id=invoice.file_id,
                confidence=confidence,
                reasons=best.reasons,
                extracted_tax_id=tax_id,
            )

        if direction is LedgerDirection.RECEIVED:
            matching_receipts = self._find_salary_receipts(amount, movement_date, ledger.salary_receipts)
            if matching_receipts:
                best = matching_receipts[0]
                receipt = best.document
                return MatchCandidate(
                    kind=MatchKind.SALARY_RECEIPT,
                    description=f"Sueldo {receipt.period} - {receipt.employee_name}",
                    matched_file_id=receipt.file_id,
                    confidence=Confidence.HIGH,
                    reasons=best.reasons,
                    extracted_tax_id=tax_id,
                )

        if matching_payments:
            payment = matching_payments[0].document
            return MatchCandidate(
                kind=MatchKind.PAYMENT_ONLY,
                description=self._payment_description(payment),
                matched_file_id=payment.file_id,
                confidence=Confidence.LOW,
                reasons=matching_payments[0].reasons + ("Payment without linked invoice",),
                extracted_tax_id=tax_id,
            )

        return self._no_match("No matching documents found")

    def _find_payments(
        self,
        amount: Decimal,
        movement_date: date,
        tax_id: Optional[str],
        payments: tuple[PaymentRecord, ...],
    ) -> list[_Scored]:
        matches = []
        for payment in payments:
            if not amounts_match(payment.amount, amount, self.tolerance):
                continue
            payment_date = try_parse_date(payment.payment_date)
            if payment_date is None:
                continue
            if not is_within_days(movement_date, payment_date, PAYMENT_DATE_RANGE, PAYMENT_DATE_RANGE):
                continue
            has_tax_id = bool(tax_id) and payment.counterparty_tax_id == tax_id
            reasons = (f"Amount match: {amount}", f"Date match: payment {payment.payment_date}")
            if has_tax_id:
                reasons += ("Tax id match",)
            matches.append(
                _Scored(payment, has_tax_id, 0, days_between(movement_date, payment_date), reasons)
            )
        matches.sort(key=_Scored.sort_key)
        return matches

    def _find_invoices(
        self,
        amount: Decimal,
        movement_date: date,
        tax_id: Optional[str],
        description: str,
        invoices: tuple[InvoiceRecord, ...],
        withholdings: tuple[WithholdingRecord, ...] = (),
    ) -> list[_Scored]:
        direct_debit = is_direct_debit(description)
        matches = []
        for invoice in invoices:
            invoice_date = try_parse_date(invoice.issue_date)
            if invoice_date is None:
                continue
            if not is_within_days(
                invoice_date, movement_date, INVOICE_DATE_RANGE_BEFORE, INVOICE_DATE_RANGE_AFTER
            ):
                continue

            used_withholdings: tuple[WithholdingRecord, ...] = ()
            if self._invoice_amount_matches(invoice, invoice_date, amount):
                reasons = (f"Amount match: {amount}",)
            else:
                related = related_withholdings(invoice, invoice_date, withholdings)
                if not related:
                    continue
                withheld = sum((w.amount for w in related), Decimal("0"))
                if not self._invoice_amount_matches(invoice, invoice_date, amount + withheld):
                    continue
                used_withholdings = related
                reasons = (f"Amount plus withholdings match: {amount} + {withheld}",)
            reasons += (f"Date match: invoice {invoice.issue_date}",)
            if invoice.currency == "USD":
                reasons += ("Cross-currency match (USD to ARS)",)

            has_tax_id = bool(tax_id) and invoice.counterparty_tax_id == tax_id
            score = 0
            if has_tax_id:
                reasons += ("Tax id match",)
            elif used_withholdings:
                reasons += ("Withholding agent matches customer",)
            elif direct_debit:
                score = keyword_match_score(description, invoice.counterparty_name, invoice.concept)
                if score < MIN_KEYWORD_MATCH_SCORE:
                    continue
                reasons += (f"Keyword match (score: {score})", "Direct debit without tax id")
            else:
                continue

            matches.append(
                _Scored(
                    invoice,
                    has_tax_id,
                    score,
                    days_between(invoice_date, movement_date),
                    reasons,
                    used_withholdings,
                )
            )
        matches.sort(key=_Scored.sort_key)
        return matches

    def _find_salary_receipts(
        self,
        amount: Decimal,
        movement_date: date,
        receipts: tuple[SalaryReceiptRecord, ...],
    ) -> list[_Scored]:
        matches = []
        for receipt in receipts:
            if not amounts_match(receipt.net_amount, amount, self.tolerance):
                continue
            receipt_date = try_parse_date(receipt.payment_date)
            if receipt_date is None:
                continue
            if not is_within_days(
                receipt_date, movement_date, INVOICE_DATE_RANGE_BEFORE, INVOICE_DATE_RANGE_AFTER
            ):
                continue
            reasons = (
                f"Amount match: {amount}",
                f"Date match: salary receipt {receipt.payment_date}",
                f"Employee: {receipt.employee_name}",
            )
            matches.append(
                _Scored(receipt, False, 0, days_between(receipt_date, movement_date), reasons)
            )
        matches.sort(key=_Scored.sort_key)
        return matches

    def _invoice_amount_matches(self, invoice: InvoiceRecord, invoice_date: date, amount: Decimal) -> bool:
        if invoice.currency != "USD":
            return amounts_match(invoice.total_amount, amount, self.tolerance)
        rate = self.exchange_rates.get(invoice_date)
        if rate is None:
            if invoice_date not in self._missing_rates:
                self._missing_rates.add(invoice_date)
                _logger.warning(
                    "matcher:exchange_rate_missing date=%s invoice=%s",
                    invoice_date.isoformat(),
                    invoice.file_id,
                )
            return False
        return amounts_match_cross_currency(
            invoice.total_amount, rate, amount, self.cross_currency_tolerance_percent
        )

    @staticmethod
    def _invoice_description(invoice: InvoiceRecord) -> str:
        if invoice.direction is LedgerDirection.ISSUED:
            text = f"Cobro Factura de {invoice.counterparty_name or 'Cliente'}"
        else:
            text = f"Pago Factura a {invoice.counterparty_name or 'Proveedor'}"
        if invoice.concept:
            text += f" - {invoice.concept}"
        return text

    @staticmethod
    def _payment_description(payment: PaymentRecord) -> str:
        name = payment.counterparty_name or "Desconocido"
        tax_id = f" {payment.counterparty_tax_id}" if payment.counterparty_tax_id else ""
        concept = f" ({payment.concept})" if payment.concept else ""
        if payment.direction is LedgerDirection.ISSUED:
            return f"REVISAR! Cobro de {name}{tax_id}{concept}"
        return f"REVISAR! Pago a {name}{tax_id}{concept}"

    @staticmethod
    def _fixed(kind: MatchKind, description: str, reason: str) -> MatchCandidate:
        return MatchCandidate(
            kind=kind,
            description=description,
            matched_file_id="",
            confidence=Confidence.HIGH,
            reasons=(reason,),
        )

    @staticmethod
    def _no_match(reason: str) -> MatchCandidate:
        return MatchCandidate(
            kind=MatchKind.NO_MATCH,
            description="",
            matched_file_id="",
            confidence=Confidence.LOW,
            reasons=(reason,),
        )


def related_withholdings(
    invoice: InvoiceRecord,
    invoice_date: date,
    withholdings: tuple[WithholdingRecord, ...],
) -> tuple[WithholdingRecord, ...]:
    """Withholdings certified by the invoice's customer on or up to 90 days after its date."""
    if not invoice.counterparty_tax_id:
        return ()
    related = []
    for withholding in withholdings:
        if withholding.agent_tax_id != invoice.counterparty_tax_id:
            continue
        withholding_date = try_parse_date(withholding.issue_date)
        if withholding_date is None:
            continue
        if 0 <= (withholding_date - invoice_date).days <= WITHHOLDING_DATE_RANGE:
            related.append(withholding)
    return tuple(related)
