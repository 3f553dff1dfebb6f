"""Tests for the SQLAlchemy storage backend."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from bankrecon.database.locks import SQLAlchemyLockManager
from bankrecon.database.sqlalchemy_db import is_balance_row, is_month_tab, ledger_tab_name
from bankrecon.domain.entities import WriteRecord
from bankrecon.domain.errors import (
    ConflictError,
    DependencyError,
    LockTimeoutError,
    NotFoundError,
)
from bankrecon.domain.row_version import compute_row_version

from helpers import movement


@pytest.fixture
def db(temp_db):
    """Temporary database whose clock is fixed to mid 2025."""
    temp_db.today = lambda: date(2025, 6, 15)
    temp_db.set_ledger_layout("ledger-issued", "ledger-received")
    temp_db.add_partition("Banco A", "store-a")
    return temp_db


def test_partition_map_absent_without_layout(temp_db):
    assert asyncio.run(temp_db.get_cached_partitions()) is None


def test_partition_map_roundtrip(db):
    db.add_partition("Banco B", "store-b")
    db.set_ledger_layout("issued-2", "received-2")

    partition_map = asyncio.run(db.get_cached_partitions())

    assert partition_map.issued_ledger_id == "issued-2"
    assert partition_map.received_ledger_id == "received-2"
    assert partition_map.partitions == {"Banco A": "store-a", "Banco B": "store-b"}


def test_duplicate_partition_rejected(db):
    with pytest.raises(ConflictError, match="already exists"):
        db.add_partition("Banco A", "store-x")


def test_ledger_rows_by_tab_name(db):
    db.replace_ledger_rows("ledger-issued", "Facturas Emitidas", [["fileid"], ["f-1"], ["f-2"]])
    db.replace_ledger_rows("ledger-issued", "Facturas Emitidas", [["fileid"], ["f-3"]])

    plain = asyncio.run(db.get_ledger_rows("ledger-issued", "Facturas Emitidas!A:R"))
    quoted = asyncio.run(db.get_ledger_rows("ledger-issued", "'Facturas Emitidas'!A:R"))
    missing = asyncio.run(db.get_ledger_rows("ledger-issued", "Pagos Recibidos!A:O"))

    assert plain.ok and plain.value == [["fileid"], ["f-3"]]
    assert quoted.value == plain.value
    assert missing.ok and missing.value == []


def test_ledger_tab_name():
    assert ledger_tab_name("Pagos Enviados!A:O") == "Pagos Enviados"
    assert ledger_tab_name("'Facturas Recibidas'!A:S") == "Facturas Recibidas"
    assert ledger_tab_name("Hoja1") == "Hoja1"


def test_month_tab_and_balance_row_filters():
    assert is_month_tab("2025-03", (2025, 2024))
    assert not is_month_tab("2023-12", (2025, 2024))
    assert not is_month_tab("2025-13", (2025, 2024))
    assert not is_month_tab("Resumen", (2025, 2024))
    assert is_balance_row("SALDO INICIAL")
    assert is_balance_row(" saldo final del mes")
    assert not is_balance_row("TRANSFERENCIA SALDO")


def test_pending_movements_filter_tabs_and_balance_rows(db):
    db.replace_movements(
        "store-a",
        "2025-03",
        [
            movement(2, "2025-03-01", "SALDO INICIAL"),
            movement(3, "2025-03-05", "TRANSFERENCIA", debit="100"),
            movement(4, "2025-03-31", "SALDO FINAL"),
        ],
    )
    db.replace_movements("store-a", "2024-12", [movement(2, "2024-12-10", "PAGO", credit="50", sheet="2024-12")])
    db.replace_movements("store-a", "2023-12", [movement(2, "2023-12-10", "VIEJO", debit="1", sheet="2023-12")])
    db.replace_movements("store-a", "Resumen", [movement(2, "", "TOTAL", debit="1", sheet="Resumen")])

    result = asyncio.run(db.get_pending_movements("store-a", 100))

    assert result.ok
    assert [(m.sheet, m.row) for m in result.value] == [("2024-12", 2), ("2025-03", 3)]
    first = result.value[1]
    assert first.debit == Decimal("100")
    assert first.credit is None
    assert first.partition_id == "store-a"


def test_pending_movements_respect_limit(db):
    db.replace_movements(
        "store-a",
        "2025-01",
        [movement(row, "2025-01-02", f"MOV {row}", debit="1", sheet="2025-01") for row in range(2, 8)],
    )

    result = asyncio.run(db.get_pending_movements("store-a", 3))

    assert [m.row for m in result.value] == [2, 3, 4]


def test_pending_movements_unknown_store(db):
    result = asyncio.run(db.get_pending_movements("store-zz", 10))

    assert not result.ok
    assert isinstance(result.error, NotFoundError)


def test_write_back_applies_fresh_rows(db):
    db.replace_movements("store-a", "2025-03", [movement(2, "2025-03-05", "TRANSFERENCIA", debit="100")])
    current = db.get_movement("store-a", "2025-03", 2)
    record = WriteRecord(
        partition_id="store-a",
        sheet="2025-03",
        row=2,
        matched_file_id="f-1",
        detail="Pago Factura a Proveedor SA",
        expected_version=compute_row_version(current),
    )

    result = asyncio.run(db.write_back("store-a", [record]))

    assert result.ok and result.value == 1
    updated = db.get_movement("store-a", "2025-03", 2)
    assert updated.matched_file_id == "f-1"
    assert updated.detail == "Pago Factura a Proveedor SA"


def test_write_back_skips_stale_and_missing_rows(db):
    db.replace_movements("store-a", "2025-03", [movement(2, "2025-03-05", "TRANSFERENCIA", debit="100")])
    read_version = compute_row_version(db.get_movement("store-a", "2025-03", 2))
    # Row edited after it was read
    db.replace_movements(
        "store-a", "2025-03", [movement(2, "2025-03-05", "TRANSFERENCIA", debit="100", detail="a mano")]
    )
    stale = WriteRecord("store-a", "2025-03", 2, "f-1", "Pago", read_version)
    missing = WriteRecord("store-a", "2025-03", 99, "f-2", "Pago", read_version)

    result = asyncio.run(db.write_back("store-a", [stale, missing]))

    assert result.ok and result.value == 0
    assert db.get_movement("store-a", "2025-03", 2).detail == "a mano"


def test_write_back_empty_batch(db):
    assert asyncio.run(db.write_back("store-a", [])).value == 0


def test_lock_runs_function_and_releases(db):
    locks = db.create_lock_manager()

    async def work():
        return "done"

    first = asyncio.run(locks.with_lock("document-processing", work, 0, 60))
    second = asyncio.run(locks.with_lock("document-processing", work, 0, 60))

    assert first.ok and first.value == "done"
    assert second.ok


def test_lock_held_times_out(db):
    locks = SQLAlchemyLockManager(db.session_factory, poll_interval=0.01)
    holder = asyncio.run(locks.acquire("document-processing", 0, 60))

    async def work():
        return "never"

    result = asyncio.run(locks.with_lock("document-processing", work, 0.05, 60))

    assert holder is not None
    assert not result.ok
    assert isinstance(result.error, LockTimeoutError)


def test_expired_lock_is_taken_over(db):
    locks = db.create_lock_manager()
    stale_holder = asyncio.run(locks.acquire("document-processing", 0, -1))
    new_holder = asyncio.run(locks.acquire("document-processing", 0, 60))

    assert stale_holder is not None
    assert new_holder is not None
    assert new_holder != stale_holder

    # The previous holder's release must not free the new holder's lock
    locks.release("document-processing", stale_holder)
    assert asyncio.run(locks.acquire("document-processing", 0, 60)) is None


def test_lock_returns_error_when_function_raises(db):
    locks = db.create_lock_manager()

    async def failing():
        raise RuntimeError("boom")

    result = asyncio.run(locks.with_lock("document-processing", failing, 0, 60))

    assert not result.ok
    assert str(result.error) == "boom"
    assert asyncio.run(locks.acquire("document-processing", 0, 60)) is not None


def test_lock_storage_failure_is_returned_as_error():
    def broken_session_factory():
        raise OperationalError("SELECT run_locks", {}, Exception("database is locked"))

    locks = SQLAlchemyLockManager(broken_session_factory)
    calls = []

    async def work():
        calls.append(1)

    result = asyncio.run(locks.with_lock("document-processing", work, 0, 60))

    assert not result.ok
    assert isinstance(result.error, DependencyError)
    assert "document-processing" in str(result.error)
    assert calls == []


def test_exchange_rates_roundtrip(db):
    assert db.get_exchange_rates() == {}

    db.set_exchange_rate(date(2025, 3, 5), Decimal("1065.50"))
    db.set_exchange_rate(date(2025, 3, 6), Decimal("1070"))
    db.set_exchange_rate(date(2025, 3, 5), Decimal("1066.25"))

    assert db.get_exchange_rates() == {
        date(2025, 3, 5): Decimal("1066.25"),
        date(2025, 3, 6): Decimal("1070"),
    }
