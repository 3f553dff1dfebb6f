"""Partition and ledger layout domain service."""

from typing import Optional

from bankrecon.database.base import Database
from bankrecon.domain.entities import PartitionMap
from bankrecon.domain.errors import ValidationError


class PartitionService:
    """Service for managing the ledger layout and bank partitions."""

    def __init__(self, db: Database):
        """Initialize partition service.

        Args:
            db: Database instance
        """
        self.db = db

    def set_layout(self, issued_ledger_id: str, received_ledger_id: str) -> None:
        """Set the spreadsheets holding issued-side and received-side documents.

        Raises:
            ValidationError: If either ID is blank
        """
        issued_ledger_id = issued_ledger_id.strip()
        received_ledger_id = received_ledger_id.strip()
        if not issued_ledger_id or not received_ledger_id:
            raise ValidationError("Ledger spreadsheet IDs must not be empty")
        self.db.set_ledger_layout(issued_ledger_id, received_ledger_id)

    def add_partition(self, bank_name: str, store_id: str) -> None:
        """Register a bank and the movement store holding its rows.

        Raises:
            ValidationError: If bank name or store ID is blank
            ConflictError: If the bank is already registered
        """
        bank_name = bank_name.strip()
        store_id = store_id.strip()
        if not bank_name or not store_id:
            raise ValidationError("Bank name and store ID must not be empty")
        self.db.add_partition(bank_name, store_id)

    def list_partitions(self) -> dict[str, str]:
        """List registered partitions as bank name to store ID."""
        return self.db.list_partitions()

    async def get_partition_map(self) -> Optional[PartitionMap]:
        """Return the full partition map, or None without a ledger layout."""
        return await self.db.get_cached_partitions()
