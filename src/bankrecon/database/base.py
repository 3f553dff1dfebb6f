"""Abstract interfaces of the stores the reconciliation engine talks to.

Every call may suspend on I/O, so all operations are coroutines. Fallible
operations return a ``Result`` instead of raising.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

# Import entities directly to avoid circular import through domain/__init__.py
from bankrecon.domain.entities import Movement, PartitionMap, WriteRecord
from bankrecon.domain.result import Result

T = TypeVar("T")


class LockManager(ABC):
    """Named, expiring mutual exclusion shared by every run."""

    @abstractmethod
    async def with_lock(
        self,
        lock_id: str,
        fn: Callable[[], Awaitable[T]],
        acquire_timeout: float,
        expiry: float,
    ) -> Result[T, Exception]:
        """Run ``fn`` while holding ``lock_id``.

        Args:
            lock_id: Lock name
            fn: Coroutine function to run under the lock
            acquire_timeout: Seconds to wait for the lock
            expiry: Seconds after which a held lock may be taken over

        Returns:
            Ok with the value of ``fn``; Err(LockTimeoutError) if the lock was
            not acquired in time; Err with the exception if ``fn`` raised.
        """
        pass


class PartitionMapProvider(ABC):
    """Source of the bank partition map."""

    @abstractmethod
    async def get_cached_partitions(self) -> Optional[PartitionMap]:
        """Return the partition map, or None if it has not been discovered yet."""
        pass


class LedgerReader(ABC):
    """Read access to the raw ledger sheets."""

    @abstractmethod
    async def get_ledger_rows(self, spreadsheet_id: str, range_spec: str) -> Result[list[list[Any]], Exception]:
        """Return the raw rows of a ledger tab, header row included.

        Args:
            spreadsheet_id: Ledger spreadsheet ID
            range_spec: Tab name, optionally followed by an A1 range ("Pagos Enviados!A:O")
        """
        pass


class MovementStore(ABC):
    """Read and write access to bank movements."""

    @abstractmethod
    async def get_pending_movements(self, partition_id: str, limit: int) -> Result[list[Movement], Exception]:
        """Return movements that are unmatched or eligible for re-evaluation."""
        pass

    @abstractmethod
    async def write_back(self, partition_id: str, records: list[WriteRecord]) -> Result[int, Exception]:
        """Apply match write-backs for one partition.

        A record is applied only if the row's current version still equals
        ``record.expected_version``; stale rows are skipped, not failed.

        Returns:
            Ok with the number of rows actually applied
        """
        pass


class Database(PartitionMapProvider, LedgerReader, MovementStore):
    """Local store backing the reconciliation engine and its admin commands."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables, indexes, etc.)."""
        pass

    @abstractmethod
    def create_lock_manager(self) -> LockManager:
        """Return a lock manager backed by this database."""
        pass

    # Ledger layout and partitions
    @abstractmethod
    def set_ledger_layout(self, issued_ledger_id: str, received_ledger_id: str) -> None:
        """Record the IDs of the issued-side and received-side ledgers."""
        pass

    @abstractmethod
    def add_partition(self, bank_name: str, store_id: str) -> None:
        """Register a bank partition. Raises ConflictError if it already exists."""
        pass

    @abstractmethod
    def list_partitions(self) -> dict[str, str]:
        """Return registered partitions as bank name to store ID."""
        pass

    # Exchange rates
    @abstractmethod
    def set_exchange_rate(self, rate_date: date, sell_rate: Decimal) -> None:
        """Store the USD sell rate (ARS per USD) for a day."""
        pass

    @abstractmethod
    def get_exchange_rates(self) -> dict[date, Decimal]:
        """Return all stored sell rates keyed by day."""
        pass

    # Raw data loading
    @abstractmethod
    def replace_ledger_rows(self, spreadsheet_id: str, tab: str, rows: list[list[Any]]) -> int:
        """Replace the raw rows of a ledger tab. Returns the number of rows stored."""
        pass

    @abstractmethod
    def replace_movements(self, store_id: str, sheet: str, movements: list[Movement]) -> int:
        """Replace the movements of one month tab. Returns the number stored."""
        pass

    @abstractmethod
    def get_movement(self, store_id: str, sheet: str, row: int) -> Optional[Movement]:
        """Get a single movement by position."""
        pass
