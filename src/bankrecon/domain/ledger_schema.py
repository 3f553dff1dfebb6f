"""Schema-driven decoding of raw ledger sheets into typed records.

Each ledger tab is described by an ordered tuple of ``ColumnSpec`` entries.
The header row is resolved once into a ``ResolvedSchema`` (column name to
index), which enforces required columns up front; every data row is then
projected through it.

Header cells are lower-cased by the parse functions before resolution.
``get_required_column_index`` itself never folds case.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence

from bankrecon.domain.entities import (
    Confidence,
    InvoiceRecord,
    LedgerDirection,
    PaymentRecord,
    SalaryReceiptRecord,
    WithholdingRecord,
)
from bankrecon.domain.errors import MissingHeaderError, required_header_not_found
from bankrecon.utils.amount_parser import to_decimal
from bankrecon.utils.date_parser import normalize_spreadsheet_date

CellValue = Any


def get_required_column_index(headers: Sequence[str], name: str) -> int:
    """Return the index of ``name`` in ``headers``.

    Matching is exact; callers must normalize case before calling.

    Raises:
        MissingHeaderError: If the header is not present
    """
    try:
        return list(headers).index(name)
    except ValueError:
        raise MissingHeaderError(required_header_not_found(name, list(headers))) from None


@dataclass(frozen=True)
class ColumnSpec:
    """One column of a ledger tab."""

    name: str
    required: bool = False
    default: CellValue = ""


class ResolvedSchema:
    """Column specs resolved against a concrete header row."""

    def __init__(self, specs: Sequence[ColumnSpec], headers: Sequence[str]):
        self.specs = {spec.name: spec for spec in specs}
        self.indexes: dict[str, Optional[int]] = {}
        for spec in specs:
            if spec.required:
                self.indexes[spec.name] = get_required_column_index(headers, spec.name)
            else:
                self.indexes[spec.name] = headers.index(spec.name) if spec.name in headers else None

    def raw(self, row: Sequence[CellValue], name: str) -> CellValue:
        """Return the raw cell for ``name``, or the column default."""
        index = self.indexes[name]
        if index is None or index >= len(row):
            return self.specs[name].default
        value = row[index]
        if value is None or value == "":
            return self.specs[name].default
        return value

    def text(self, row: Sequence[CellValue], name: str) -> str:
        return str(self.raw(row, name)).strip()

    def amount(self, row: Sequence[CellValue], name: str) -> Decimal:
        value = to_decimal(self.raw(row, name))
        return value if value is not None else Decimal("0")

    def date(self, row: Sequence[CellValue], name: str) -> str:
        return normalize_spreadsheet_date(self.raw(row, name))

    def confidence(self, row: Sequence[CellValue], name: str) -> Optional[Confidence]:
        text = self.text(row, name).upper()
        try:
            return Confidence(text) if text else None
        except ValueError:
            return None


# Counterparty columns per ledger side: (tax id, name)
INVOICE_COUNTERPARTY_COLUMNS = {
    LedgerDirection.ISSUED: ("cuitreceptor", "razonsocialreceptor"),
    LedgerDirection.RECEIVED: ("cuitemisor", "razonsocialemisor"),
}

PAYMENT_COUNTERPARTY_COLUMNS = {
    LedgerDirection.ISSUED: ("cuitpagador", "nombrepagador"),
    LedgerDirection.RECEIVED: ("cuitbeneficiario", "nombrebeneficiario"),
}


def invoice_columns(direction: LedgerDirection) -> tuple[ColumnSpec, ...]:
    """Column specs of an invoice tab for the given ledger side."""
    tax_id_column, name_column = INVOICE_COUNTERPARTY_COLUMNS[direction]
    return (
        ColumnSpec("fileid", required=True),
        ColumnSpec("fechaemision", required=True),
        ColumnSpec(tax_id_column, required=True),
        ColumnSpec(name_column, required=True),
        ColumnSpec("importetotal", required=True, default=0),
        ColumnSpec("moneda", required=True),
        ColumnSpec("nrofactura"),
        ColumnSpec("concepto"),
        ColumnSpec("matchedpagofileid"),
        ColumnSpec("matchconfidence"),
    )


def payment_columns(direction: LedgerDirection) -> tuple[ColumnSpec, ...]:
    """Column specs of a payment tab for the given ledger side."""
    tax_id_column, name_column = PAYMENT_COUNTERPARTY_COLUMNS[direction]
    return (
        ColumnSpec("fileid", required=True),
        ColumnSpec("fechapago", required=True),
        ColumnSpec(tax_id_column, required=True),
        ColumnSpec(name_column, required=True),
        ColumnSpec("importepagado", required=True, default=0),
        ColumnSpec("moneda", required=True),
        ColumnSpec("banco"),
        ColumnSpec("referencia"),
        ColumnSpec("concepto"),
        ColumnSpec("matchedfacturafileid"),
        ColumnSpec("matchconfidence"),
    )


def _normalize_headers(header_row: Sequence[CellValue]) -> list[str]:
    return [str(h if h is not None else "").strip().lower() for h in header_row]


def _data_rows(raw_rows: Sequence[Sequence[CellValue]]):
    """Yield (row number, row) for data rows; row numbers are 1-indexed."""
    for i in range(1, len(raw_rows)):
        yield i + 1, raw_rows[i] or []


def parse_invoice_rows(
    raw_rows: Sequence[Sequence[CellValue]], direction: LedgerDirection
) -> list[InvoiceRecord]:
    """Parse an invoice tab (header row first) into invoice records.

    Rows without a document id are dropped.

    Raises:
        MissingHeaderError: If a required column is missing from the header
    """
    if len(raw_rows) < 2:
        return []

    schema = ResolvedSchema(invoice_columns(direction), _normalize_headers(raw_rows[0]))
    tax_id_column, name_column = INVOICE_COUNTERPARTY_COLUMNS[direction]

    invoices = []
    for row_number, row in _data_rows(raw_rows):
        file_id = schema.text(row, "fileid")
        if not file_id:
            continue
        invoices.append(
            InvoiceRecord(
                file_id=file_id,
                issue_date=schema.date(row, "fechaemision"),
                counterparty_tax_id=schema.text(row, tax_id_column),
                counterparty_name=schema.text(row, name_column),
                total_amount=schema.amount(row, "importetotal"),
                currency=schema.text(row, "moneda").upper(),
                row=row_number,
                direction=direction,
                invoice_number=schema.text(row, "nrofactura"),
                concept=schema.text(row, "concepto"),
                linked_payment_id=schema.text(row, "matchedpagofileid"),
                match_confidence=schema.confidence(row, "matchconfidence"),
            )
        )
    return invoices


def parse_payment_rows(
    raw_rows: Sequence[Sequence[CellValue]], direction: LedgerDirection
) -> list[PaymentRecord]:
    """Parse a payment tab (header row first) into payment records.

    Rows without a document id are dropped.

    Raises:
        MissingHeaderError: If a required column is missing from the header
    """
    if len(raw_rows) < 2:
        return []

    schema = ResolvedSchema(payment_columns(direction), _normalize_headers(raw_rows[0]))
    tax_id_column, name_column = PAYMENT_COUNTERPARTY_COLUMNS[direction]

    payments = []
    for row_number, row in _data_rows(raw_rows):
        file_id = schema.text(row, "fileid")
        if not file_id:
            continue
        payments.append(
            PaymentRecord(
                file_id=file_id,
                payment_date=schema.date(row, "fechapago"),
                counterparty_tax_id=schema.text(row, tax_id_column),
                counterparty_name=schema.text(row, name_column),
                amount=schema.amount(row, "importepagado"),
                currency=schema.text(row, "moneda").upper(),
                row=row_number,
                direction=direction,
                bank=schema.text(row, "banco"),
                reference=schema.text(row, "referencia"),
                concept=schema.text(row, "concepto"),
                linked_invoice_id=schema.text(row, "matchedfacturafileid"),
                match_confidence=schema.confidence(row, "matchconfidence"),
            )
        )
    return payments


SALARY_RECEIPT_COLUMNS = (
    ColumnSpec("fileid", required=True),
    ColumnSpec("fechapago", required=True),
    ColumnSpec("nombreempleado", required=True),
    ColumnSpec("cuilempleado", required=True),
    ColumnSpec("totalneto", required=True, default=0),
    ColumnSpec("periodoabonado"),
    ColumnSpec("cuitempleador"),
    ColumnSpec("tiporecibo", default="sueldo"),
    ColumnSpec("matchconfidence"),
)

WITHHOLDING_COLUMNS = (
    ColumnSpec("fileid", required=True),
    ColumnSpec("fechaemision", required=True),
    ColumnSpec("montoretencion", required=True, default=0),
    ColumnSpec("cuitagenteretencion"),
    ColumnSpec("razonsocialagenteretencion"),
    ColumnSpec("nrocertificado"),
    ColumnSpec("impuesto"),
    ColumnSpec("matchedfacturafileid"),
)


def parse_salary_receipt_rows(raw_rows: Sequence[Sequence[CellValue]]) -> list[SalaryReceiptRecord]:
    """Parse the salary receipts tab (header row first).

    Raises:
        MissingHeaderError: If a required column is missing from the header
    """
    if len(raw_rows) < 2:
        return []

    schema = ResolvedSchema(SALARY_RECEIPT_COLUMNS, _normalize_headers(raw_rows[0]))
    receipts = []
    for row_number, row in _data_rows(raw_rows):
        file_id = schema.text(row, "fileid")
        if not file_id:
            continue
        receipts.append(
            SalaryReceiptRecord(
                file_id=file_id,
                payment_date=schema.date(row, "fechapago"),
                employee_name=schema.text(row, "nombreempleado"),
                employee_tax_id=schema.text(row, "cuilempleado"),
                net_amount=schema.amount(row, "totalneto"),
                row=row_number,
                period=schema.text(row, "periodoabonado"),
                employer_tax_id=schema.text(row, "cuitempleador"),
                receipt_type=schema.text(row, "tiporecibo"),
                match_confidence=schema.confidence(row, "matchconfidence"),
            )
        )
    return receipts


def parse_withholding_rows(raw_rows: Sequence[Sequence[CellValue]]) -> list[WithholdingRecord]:
    """Parse the received withholdings tab (header row first).

    Raises:
        MissingHeaderError: If a required column is missing from the header
    """
    if len(raw_rows) < 2:
        return []

    schema = ResolvedSchema(WITHHOLDING_COLUMNS, _normalize_headers(raw_rows[0]))
    withholdings = []
    for row_number, row in _data_rows(raw_rows):
        file_id = schema.text(row, "fileid")
        if not file_id:
            continue
        withholdings.append(
            WithholdingRecord(
                file_id=file_id,
                issue_date=schema.date(row, "fechaemision"),
                agent_tax_id=schema.text(row, "cuitagenteretencion"),
                agent_name=schema.text(row, "razonsocialagenteretencion"),
                amount=schema.amount(row, "montoretencion"),
                row=row_number,
                certificate_number=schema.text(row, "nrocertificado"),
                tax=schema.text(row, "impuesto"),
                linked_invoice_id=schema.text(row, "matchedfacturafileid"),
            )
        )
    return withholdings
