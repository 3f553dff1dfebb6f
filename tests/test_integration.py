"""Integration tests for end-to-end workflows."""

import asyncio
from datetime import date

from bankrecon.config import Settings
from bankrecon.domain.matcher import BANK_FEE_DESCRIPTION
from bankrecon.domain.reconciliation import ReconciliationService

from helpers import LEDGER_TAB_HEADERS, movement

SUPPLIER_CUIT = "30712345671"
CUSTOMER_CUIT = "20123456786"


def seed(db):
    db.today = lambda: date(2025, 6, 15)
    db.set_ledger_layout("ledger-issued", "ledger-received")
    db.add_partition("Banco A", "store-a")
    db.replace_ledger_rows(
        "ledger-received",
        "Facturas Recibidas",
        [
            LEDGER_TAB_HEADERS["Facturas Recibidas"],
            ["f-r1", "2025-03-05", SUPPLIER_CUIT, "Proveedor SA", "1000", "ARS", "Insumos", "", ""],
        ],
    )
    db.replace_ledger_rows(
        "ledger-issued",
        "Facturas Emitidas",
        [
            LEDGER_TAB_HEADERS["Facturas Emitidas"],
            ["f-e1", "2025-03-01", CUSTOMER_CUIT, "Cliente SRL", "2.500,00", "ARS", "", "", ""],
        ],
    )
    db.replace_movements(
        "store-a",
        "2025-03",
        [
            movement(2, "01/03/2025", "SALDO INICIAL"),
            movement(3, "10/03/2025", f"TRANSFERENCIA CUIT {SUPPLIER_CUIT}", debit="1000"),
            movement(4, "12/03/2025", f"TRANSF RECIBIDA {CUSTOMER_CUIT}", credit="2500"),
            movement(5, "12/03/2025", "IMPUESTO LEY 25413", debit="6"),
            movement(6, "13/03/2025", "VARIOS", debit="777"),
        ],
    )


def build_service(db):
    return ReconciliationService(
        lock_manager=db.create_lock_manager(),
        partition_provider=db,
        ledger_reader=db,
        movement_store=db,
        settings=Settings(lock_timeout=1.0),
    )


def test_reconcile_fills_movements(temp_db):
    """Test a full run against the SQLite backend."""
    seed(temp_db)

    result = asyncio.run(build_service(temp_db).reconcile_all())

    assert result.ok
    partition = result.value.results[0]
    assert partition.processed == 4
    assert partition.filled == 3
    assert partition.applied == 3
    assert partition.no_matches == 1

    debit = temp_db.get_movement("store-a", "2025-03", 3)
    assert debit.matched_file_id == "f-r1"
    assert debit.detail == "Pago Factura a Proveedor SA - Insumos"
    credit = temp_db.get_movement("store-a", "2025-03", 4)
    assert credit.matched_file_id == "f-e1"
    fee = temp_db.get_movement("store-a", "2025-03", 5)
    assert fee.detail == BANK_FEE_DESCRIPTION
    assert temp_db.get_movement("store-a", "2025-03", 6).detail == ""


def test_second_run_is_idempotent(temp_db):
    """Test that re-running over filled rows writes nothing new."""
    seed(temp_db)
    service = build_service(temp_db)
    asyncio.run(service.reconcile_all())

    result = asyncio.run(service.reconcile_all())

    partition = result.value.results[0]
    assert partition.processed == 4
    assert partition.filled == 0
    assert partition.applied == 0


def test_run_skipped_while_lock_held(temp_db):
    seed(temp_db)
    locks = temp_db.create_lock_manager()
    asyncio.run(locks.acquire("document-processing", 0, 60))
    service = ReconciliationService(
        lock_manager=locks,
        partition_provider=temp_db,
        ledger_reader=temp_db,
        movement_store=temp_db,
        settings=Settings(lock_timeout=0.0),
    )

    result = asyncio.run(service.reconcile_all())

    assert result.ok
    assert result.value.skipped
    assert temp_db.get_movement("store-a", "2025-03", 3).matched_file_id == ""
