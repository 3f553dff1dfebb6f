"""CSV import domain service for ledger tabs and bank movements."""

import csv
from pathlib import Path
from decimal import Decimal
from typing import Any, Optional

from bankrecon.database.base import Database
from bankrecon.domain.entities import Movement
from bankrecon.domain.errors import ValidationError
from bankrecon.logging_setup import get_logger
from bankrecon.utils.amount_parser import parse_amount

_logger = get_logger("bankrecon.import")

MOVEMENT_REQUIRED_COLUMNS = ("fecha", "concepto", "debito", "credito")


def _read_csv_rows(csv_file_path: str) -> list[list[str]]:
    csv_path = Path(csv_file_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        sample = f.read(1024)
        f.seek(0)
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
        except csv.Error:
            delimiter = ","
        return [row for row in csv.reader(f, delimiter=delimiter)]


def _optional_amount(value: str) -> Optional[Decimal]:
    value = value.strip()
    if not value:
        return None
    return parse_amount(value)


class DataImportService:
    """Service for loading raw ledger tabs and bank movements from CSV files."""

    def __init__(self, db: Database):
        """Initialize import service.

        Args:
            db: Database instance
        """
        self.db = db

    def import_ledger_tab(self, spreadsheet_id: str, tab: str, csv_file_path: str) -> int:
        """Replace a ledger tab with the rows of a CSV file, header included.

        Cells are stored as text; headers are matched later, when the ledger
        is parsed for a run.

        Returns:
            Number of rows stored (header included)

        Raises:
            FileNotFoundError: If CSV file doesn't exist
            ValidationError: If the CSV file is empty
        """
        rows = _read_csv_rows(csv_file_path)
        if not rows:
            raise ValidationError(f"CSV file is empty: {csv_file_path}")
        stored = self.db.replace_ledger_rows(spreadsheet_id, tab, rows)
        _logger.info("import:ledger spreadsheet=%s tab=%s rows=%d", spreadsheet_id, tab, stored)
        return stored

    def import_movements(self, store_id: str, sheet: str, csv_file_path: str) -> dict[str, Any]:
        """Replace a month tab of a movement store with the rows of a CSV file.

        Expected columns (case-insensitive): fecha, concepto, debito, credito,
        and optionally saldo, matchedfileid, detalle. Row numbers follow the
        sheet convention: the header is row 1, the first movement row 2.

        Returns:
            Dict with import statistics:
            - imported: number of movements stored
            - errors: list of error messages

        Raises:
            FileNotFoundError: If CSV file doesn't exist
            ValidationError: If required columns are missing
        """
        rows = _read_csv_rows(csv_file_path)
        if not rows:
            raise ValidationError(f"CSV file is empty: {csv_file_path}")

        headers = [h.strip().lower() for h in rows[0]]
        missing = [c for c in MOVEMENT_REQUIRED_COLUMNS if c not in headers]
        if missing:
            raise ValidationError(f"CSV file missing required columns: {', '.join(missing)}")
        index = {name: headers.index(name) for name in headers if name}

        def cell(row: list[str], name: str) -> str:
            position = index.get(name)
            if position is None or position >= len(row):
                return ""
            return row[position]

        movements = []
        errors = []
        for row_num, row in enumerate(rows[1:], start=2):
            if not any(value.strip() for value in row):
                continue
            try:
                movements.append(
                    Movement(
                        partition_id=store_id,
                        sheet=sheet,
                        row=row_num,
                        date=cell(row, "fecha").strip(),
                        description=cell(row, "concepto").strip(),
                        debit=_optional_amount(cell(row, "debito")),
                        credit=_optional_amount(cell(row, "credito")),
                        balance=_optional_amount(cell(row, "saldo")),
                        matched_file_id=cell(row, "matchedfileid").strip(),
                        detail=cell(row, "detalle").strip(),
                    )
                )
            except ValueError as e:
                errors.append(f"Row {row_num}: {e}")

        imported = self.db.replace_movements(store_id, sheet, movements)
        _logger.info(
            "import:movements store=%s sheet=%s imported=%d errors=%d",
            store_id,
            sheet,
            imported,
            len(errors),
        )
        return {"imported": imported, "errors": errors}
