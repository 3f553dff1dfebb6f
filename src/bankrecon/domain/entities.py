"""Domain model entities for bankrecon.

These are pure data classes representing reconciliation concepts, independent
of how the ledger and the bank movements are stored. The storage layer maps
its rows into these entities and the reconciliation engine only ever sees them.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class Confidence(Enum):
    """Coarse quality label attached to a match."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class MatchKind(Enum):
    """How a movement was matched."""

    DIRECT_INVOICE = "direct_invoice"
    PAYMENT_INVOICE = "payment_invoice"
    PAYMENT_ONLY = "payment_only"
    SALARY_RECEIPT = "salary_receipt"
    BANK_FEE = "bank_fee"
    CARD_PAYMENT = "card_payment"
    NO_MATCH = "no_match"

    @property
    def carries_document(self) -> bool:
        """Whether matches of this kind reference a ledger document."""
        return self not in (MatchKind.BANK_FEE, MatchKind.CARD_PAYMENT, MatchKind.NO_MATCH)


class LedgerDirection(Enum):
    """Side of the ledger a record belongs to.

    ISSUED holds invoices we issued and payments we received (money in).
    RECEIVED holds invoices we received and payments we sent (money out).
    """

    ISSUED = "issued"
    RECEIVED = "received"


@dataclass(frozen=True)
class Movement:
    """Bank statement line pending reconciliation."""

    partition_id: str
    sheet: str
    row: int
    date: str
    description: str
    debit: Optional[Decimal]
    credit: Optional[Decimal]
    balance: Optional[Decimal] = None
    matched_file_id: str = ""
    detail: str = ""

    @property
    def is_debit(self) -> bool:
        return self.debit is not None and self.debit > 0

    @property
    def is_credit(self) -> bool:
        return self.credit is not None and self.credit > 0


@dataclass(frozen=True)
class InvoiceRecord:
    """Invoice row parsed from the ledger."""

    file_id: str
    issue_date: str
    counterparty_tax_id: str
    counterparty_name: str
    total_amount: Decimal
    currency: str
    row: int
    direction: LedgerDirection
    invoice_number: str = ""
    concept: str = ""
    linked_payment_id: str = ""
    match_confidence: Optional[Confidence] = None

    @property
    def document_date(self) -> str:
        return self.issue_date

    @property
    def has_linked_payment(self) -> bool:
        return bool(self.linked_payment_id)


@dataclass(frozen=True)
class PaymentRecord:
    """Payment row parsed from the ledger."""

    file_id: str
    payment_date: str
    counterparty_tax_id: str
    counterparty_name: str
    amount: Decimal
    currency: str
    row: int
    direction: LedgerDirection
    bank: str = ""
    reference: str = ""
    concept: str = ""
    linked_invoice_id: str = ""
    match_confidence: Optional[Confidence] = None

    @property
    def document_date(self) -> str:
        return self.payment_date

    @property
    def has_linked_payment(self) -> bool:
        # A payment counts as "linked" when it points at its invoice.
        return bool(self.linked_invoice_id)


@dataclass(frozen=True)
class SalaryReceiptRecord:
    """Salary receipt (recibo de sueldo) row; paid out of the bank as a debit."""

    file_id: str
    payment_date: str
    employee_name: str
    employee_tax_id: str
    net_amount: Decimal
    row: int
    period: str = ""
    employer_tax_id: str = ""
    receipt_type: str = "sueldo"
    match_confidence: Optional[Confidence] = None

    @property
    def document_date(self) -> str:
        return self.payment_date

    @property
    def counterparty_tax_id(self) -> str:
        return self.employee_tax_id

    @property
    def has_linked_payment(self) -> bool:
        return False


@dataclass(frozen=True)
class WithholdingRecord:
    """Tax withholding certificate received from a customer.

    Customers withhold part of an invoice, so the bank credit is the invoice
    total minus the withholdings.
    """

    file_id: str
    issue_date: str
    agent_tax_id: str
    agent_name: str
    amount: Decimal
    row: int
    certificate_number: str = ""
    tax: str = ""
    linked_invoice_id: str = ""


LedgerDocument = Union[InvoiceRecord, PaymentRecord, SalaryReceiptRecord]


@dataclass(frozen=True)
class LedgerData:
    """Parsed ledger for one reconciliation run.

    Lookup by document id goes through an index built once on construction.
    Withholdings are never matched to a movement, so they are not indexed.
    """

    issued_invoices: tuple[InvoiceRecord, ...] = ()
    received_payments: tuple[PaymentRecord, ...] = ()
    received_invoices: tuple[InvoiceRecord, ...] = ()
    sent_payments: tuple[PaymentRecord, ...] = ()
    salary_receipts: tuple[SalaryReceiptRecord, ...] = ()
    withholdings: tuple[WithholdingRecord, ...] = ()
    _index: dict[str, LedgerDocument] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index: dict[str, LedgerDocument] = {}
        # First occurrence wins, in the same order documents are searched.
        for documents in (
            self.issued_invoices,
            self.received_payments,
            self.received_invoices,
            self.sent_payments,
            self.salary_receipts,
        ):
            for document in documents:
                index.setdefault(document.file_id, document)
        object.__setattr__(self, "_index", index)

    def find_document(self, file_id: str) -> Optional[LedgerDocument]:
        """Return the ledger document with the given id, or None."""
        if not file_id:
            return None
        return self._index.get(file_id)

    def find_invoice(
        self, file_id: str, direction: LedgerDirection
    ) -> Optional[InvoiceRecord]:
        invoices = (
            self.issued_invoices
            if direction is LedgerDirection.ISSUED
            else self.received_invoices
        )
        for invoice in invoices:
            if invoice.file_id == file_id:
                return invoice
        return None


@dataclass(frozen=True)
class MatchCandidate:
    """Match proposed by a Matcher for one movement."""

    kind: MatchKind
    description: str
    matched_file_id: str
    confidence: Confidence
    reasons: tuple[str, ...] = ()
    extracted_tax_id: Optional[str] = None


@dataclass(frozen=True)
class MatchQuality:
    """Comparable quality metrics of a match between a movement and a document."""

    file_id: str
    confidence: Confidence
    has_tax_id_match: bool
    date_distance: float
    is_exact_amount: bool
    has_linked_payment: bool


@dataclass(frozen=True)
class WriteRecord:
    """Pending write of a match back to the movement store."""

    partition_id: str
    sheet: str
    row: int
    matched_file_id: str
    detail: str
    expected_version: str


@dataclass(frozen=True)
class PartitionMap:
    """Where the ledger lives and which movement store belongs to each bank."""

    issued_ledger_id: str
    received_ledger_id: str
    partitions: dict[str, str]


@dataclass
class PartitionResult:
    """Statistics for one bank partition within a run."""

    partition: str
    sheets_processed: int = 0
    processed: int = 0
    filled: int = 0
    debits_filled: int = 0
    credits_filled: int = 0
    no_matches: int = 0
    errors: int = 0
    applied: int = 0
    duration: float = 0.0


@dataclass(frozen=True)
class RunTotals:
    """Aggregate statistics across all partitions of a run."""

    total_processed: int = 0
    total_filled: int = 0
    total_debits_filled: int = 0
    total_credits_filled: int = 0
    total_no_matches: int = 0
    total_errors: int = 0
    total_applied: int = 0


@dataclass(frozen=True)
class RunOutcome:
    """Outcome of a reconciliation run."""

    skipped: bool
    reason: Optional[str] = None
    results: tuple[PartitionResult, ...] = ()
    totals: Optional[RunTotals] = None
    duration: float = 0.0
