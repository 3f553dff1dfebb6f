"""Fakes and builders shared by bankrecon tests."""

from decimal import Decimal
from typing import Any, Optional

from bankrecon.database.base import (
    LedgerReader,
    LockManager,
    MovementStore,
    PartitionMapProvider,
)
from bankrecon.domain.entities import Movement, PartitionMap
from bankrecon.domain.errors import LockTimeoutError
from bankrecon.domain.result import Err, Ok

ISSUED_INVOICE_HEADERS = [
    "fileId", "fechaEmision", "cuitReceptor", "razonSocialReceptor",
    "importeTotal", "moneda", "concepto", "matchedPagoFileId", "matchConfidence",
]
RECEIVED_INVOICE_HEADERS = [
    "fileId", "fechaEmision", "cuitEmisor", "razonSocialEmisor",
    "importeTotal", "moneda", "concepto", "matchedPagoFileId", "matchConfidence",
]
RECEIVED_PAYMENT_HEADERS = [
    "fileId", "fechaPago", "cuitPagador", "nombrePagador",
    "importePagado", "moneda", "concepto", "matchedFacturaFileId", "matchConfidence",
]
SENT_PAYMENT_HEADERS = [
    "fileId", "fechaPago", "cuitBeneficiario", "nombreBeneficiario",
    "importePagado", "moneda", "concepto", "matchedFacturaFileId", "matchConfidence",
]

SALARY_RECEIPT_HEADERS = [
    "fileId", "fechaPago", "nombreEmpleado", "cuilEmpleado", "totalNeto", "periodoAbonado",
]
WITHHOLDING_HEADERS = [
    "fileId", "fechaEmision", "cuitAgenteRetencion", "razonSocialAgenteRetencion", "montoRetencion",
]

LEDGER_TAB_HEADERS = {
    "Facturas Emitidas": ISSUED_INVOICE_HEADERS,
    "Pagos Recibidos": RECEIVED_PAYMENT_HEADERS,
    "Facturas Recibidas": RECEIVED_INVOICE_HEADERS,
    "Pagos Enviados": SENT_PAYMENT_HEADERS,
    "Recibos": SALARY_RECEIPT_HEADERS,
    "Retenciones Recibidas": WITHHOLDING_HEADERS,
}


def ledger_tabs(**rows_by_tab: list[list[Any]]) -> dict[str, list[list[Any]]]:
    """Build every ledger tab, header row first.

    Keyword names are tab names with underscores, e.g. Facturas_Recibidas.
    """
    tabs = {}
    for tab, headers in LEDGER_TAB_HEADERS.items():
        tabs[tab] = [list(headers)] + rows_by_tab.get(tab.replace(" ", "_"), [])
    return tabs


class FakeLockManager(LockManager):
    """In-memory lock; ``busy`` simulates another run holding it."""

    def __init__(self, busy: bool = False):
        self.busy = busy
        self.calls = []

    async def with_lock(self, lock_id, fn, acquire_timeout, expiry):
        self.calls.append((lock_id, acquire_timeout, expiry))
        if self.busy:
            return Err(LockTimeoutError(f"Failed to acquire lock for {lock_id}"))
        try:
            return Ok(await fn())
        except Exception as e:
            return Err(e)


class FakePartitionProvider(PartitionMapProvider):
    def __init__(self, partition_map: Optional[PartitionMap]):
        self.partition_map = partition_map
        self.calls = 0

    async def get_cached_partitions(self):
        self.calls += 1
        return self.partition_map


class FakeLedgerReader(LedgerReader):
    """Serves the same tabs for every spreadsheet; a missing tab reads as empty."""

    def __init__(self, tabs: dict[str, list[list[Any]]], error: Optional[Exception] = None):
        self.tabs = tabs
        self.error = error
        self.calls = []

    async def get_ledger_rows(self, spreadsheet_id, range_spec):
        self.calls.append((spreadsheet_id, range_spec))
        if self.error is not None:
            return Err(self.error)
        return Ok(self.tabs.get(range_spec.split("!")[0], []))


class FakeMovementStore(MovementStore):
    """Movements per store; an Exception value makes reads of that store fail."""

    def __init__(self, movements: dict[str, Any], stale_rows: Optional[set] = None):
        self.movements = movements
        self.stale_rows = stale_rows or set()
        self.writes: list[tuple[str, list]] = []
        self.read_limits = []

    async def get_pending_movements(self, partition_id, limit):
        self.read_limits.append(limit)
        value = self.movements.get(partition_id, [])
        if isinstance(value, Exception):
            return Err(value)
        return Ok(list(value)[:limit])

    async def write_back(self, partition_id, records):
        self.writes.append((partition_id, list(records)))
        applied = [r for r in records if (r.sheet, r.row) not in self.stale_rows]
        return Ok(len(applied))


def movement(
    row: int,
    date: str,
    description: str,
    debit=None,
    credit=None,
    matched_file_id: str = "",
    detail: str = "",
    partition_id: str = "store-a",
    sheet: str = "2025-03",
) -> Movement:
    """Build a movement with Decimal amounts from strings."""
    return Movement(
        partition_id=partition_id,
        sheet=sheet,
        row=row,
        date=date,
        description=description,
        debit=Decimal(debit) if debit is not None else None,
        credit=Decimal(credit) if credit is not None else None,
        matched_file_id=matched_file_id,
        detail=detail,
    )
