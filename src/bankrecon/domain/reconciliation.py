"""Reconciliation domain service.

Matches the movements of every bank partition against the ledger and writes
back a description plus a reference to the matched document.
"""

import time
from typing import Optional

from bankrecon.config import Settings
from bankrecon.database.base import (
    LedgerReader,
    LockManager,
    MovementStore,
    PartitionMapProvider,
)
from bankrecon.domain.entities import (
    LedgerData,
    LedgerDirection,
    MatchCandidate,
    MatchKind,
    Movement,
    PartitionMap,
    PartitionResult,
    RunOutcome,
    RunTotals,
    WriteRecord,
)
from bankrecon.domain.errors import (
    DomainError,
    LockTimeoutError,
    PreconditionError,
    partition_map_not_cached,
)
from bankrecon.domain.ledger_schema import (
    parse_invoice_rows,
    parse_payment_rows,
    parse_salary_receipt_rows,
    parse_withholding_rows,
)
from bankrecon.domain.matcher import DefaultMatcher, Matcher
from bankrecon.domain.quality import is_better_match, quality_for_document
from bankrecon.domain.result import Err, Ok, Result
from bankrecon.domain.row_version import compute_row_version
from bankrecon.logging_setup import get_logger

_logger = get_logger("bankrecon.reconciliation")

ALREADY_RUNNING = "already_running"

# Ledger tabs read on each side
ISSUED_INVOICES_RANGE = "Facturas Emitidas!A:R"
RECEIVED_PAYMENTS_RANGE = "Pagos Recibidos!A:O"
RECEIVED_INVOICES_RANGE = "Facturas Recibidas!A:S"
SENT_PAYMENTS_RANGE = "Pagos Enviados!A:O"
WITHHOLDINGS_RANGE = "Retenciones Recibidas!A:O"
SALARY_RECEIPTS_RANGE = "Recibos!A:R"


class ReconciliationService:
    """Service for reconciling bank movements against the ledger."""

    def __init__(
        self,
        lock_manager: LockManager,
        partition_provider: PartitionMapProvider,
        ledger_reader: LedgerReader,
        movement_store: MovementStore,
        matcher: Optional[Matcher] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize reconciliation service.

        Args:
            lock_manager: Run-level lock shared with document processing
            partition_provider: Source of the bank partition map
            ledger_reader: Raw ledger access
            movement_store: Movement reads and version-checked write-backs
            matcher: Movement matcher (defaults to DefaultMatcher)
            settings: Lock and batch settings (defaults to Settings())
        """
        self.lock_manager = lock_manager
        self.partition_provider = partition_provider
        self.ledger_reader = ledger_reader
        self.movement_store = movement_store
        self.matcher = matcher if matcher is not None else DefaultMatcher()
        self.settings = settings if settings is not None else Settings()

    async def reconcile_all(self, force: bool = False) -> Result[RunOutcome, Exception]:
        """Reconcile every bank partition under the run-level lock.

        Args:
            force: Re-evaluate rows that already carry a match, replacing it
                without a quality comparison

        Returns:
            Ok(RunOutcome) when the run completed or was skipped because
            another run holds the lock; Err for fatal failures (missing
            partition map, unreadable ledger, missing ledger headers).
            Partition-level failures only show up in each result's ``errors``.
        """

        async def run() -> Result[RunOutcome, Exception]:
            return await self._run(force)

        lock_result = await self.lock_manager.with_lock(
            self.settings.lock_id,
            run,
            self.settings.lock_timeout,
            self.settings.lock_expiry,
        )

        if not lock_result.ok:
            if isinstance(lock_result.error, LockTimeoutError):
                _logger.info("reconcile:skipped reason=%s", ALREADY_RUNNING)
                return Ok(RunOutcome(skipped=True, reason=ALREADY_RUNNING))
            return lock_result

        return lock_result.value

    async def _run(self, force: bool) -> Result[RunOutcome, Exception]:
        started = time.monotonic()

        partition_map = await self.partition_provider.get_cached_partitions()
        if partition_map is None:
            return Err(PreconditionError(partition_map_not_cached()))

        ledger_result = await self.load_ledger(partition_map)
        if not ledger_result.ok:
            return ledger_result
        ledger = ledger_result.value

        results = []
        for bank_name, store_id in partition_map.partitions.items():
            _logger.debug("reconcile:partition_start bank=%s", bank_name)
            result = await self._reconcile_partition(bank_name, store_id, ledger, force)
            results.append(result)
            _logger.info(
                "reconcile:partition_done bank=%s filled=%d no_matches=%d errors=%d duration=%.2f",
                bank_name,
                result.filled,
                result.no_matches,
                result.errors,
                result.duration,
            )

        totals = aggregate_totals(results)
        return Ok(
            RunOutcome(
                skipped=False,
                results=tuple(results),
                totals=totals,
                duration=time.monotonic() - started,
            )
        )

    async def load_ledger(self, partition_map: PartitionMap) -> Result[LedgerData, Exception]:
        """Read and parse both ledger spreadsheets.

        The issued side holds invoices, received payments and withholdings;
        the received side holds invoices, sent payments and salary receipts.
        A failed read or a missing required header fails the whole load.
        """
        reads = [
            (partition_map.issued_ledger_id, ISSUED_INVOICES_RANGE),
            (partition_map.issued_ledger_id, RECEIVED_PAYMENTS_RANGE),
            (partition_map.issued_ledger_id, WITHHOLDINGS_RANGE),
            (partition_map.received_ledger_id, RECEIVED_INVOICES_RANGE),
            (partition_map.received_ledger_id, SENT_PAYMENTS_RANGE),
            (partition_map.received_ledger_id, SALARY_RECEIPTS_RANGE),
        ]
        sheets = []
        for spreadsheet_id, range_spec in reads:
            _logger.debug("reconcile:ledger_read spreadsheet=%s range=%s", spreadsheet_id, range_spec)
            rows_result = await self.ledger_reader.get_ledger_rows(spreadsheet_id, range_spec)
            if not rows_result.ok:
                return rows_result
            sheets.append(rows_result.value)

        (
            issued_invoices,
            received_payments,
            withholdings,
            received_invoices,
            sent_payments,
            salary_receipts,
        ) = sheets
        try:
            ledger = LedgerData(
                issued_invoices=tuple(parse_invoice_rows(issued_invoices, LedgerDirection.ISSUED)),
                received_payments=tuple(parse_payment_rows(received_payments, LedgerDirection.ISSUED)),
                received_invoices=tuple(parse_invoice_rows(received_invoices, LedgerDirection.RECEIVED)),
                sent_payments=tuple(parse_payment_rows(sent_payments, LedgerDirection.RECEIVED)),
                salary_receipts=tuple(parse_salary_receipt_rows(salary_receipts)),
                withholdings=tuple(parse_withholding_rows(withholdings)),
            )
        except DomainError as e:
            return Err(e)
        return Ok(ledger)

    async def _reconcile_partition(
        self,
        bank_name: str,
        store_id: str,
        ledger: LedgerData,
        force: bool,
    ) -> PartitionResult:
        started = time.monotonic()
        result = PartitionResult(partition=bank_name)

        movements_result = await self.movement_store.get_pending_movements(
            store_id, self.settings.movement_batch_size
        )
        if not movements_result.ok:
            _logger.warning(
                "reconcile:movements_read_failed bank=%s error=%s",
                bank_name,
                movements_result.error,
            )
            result.errors = 1
            result.duration = time.monotonic() - started
            return result

        movements = movements_result.value
        result.processed = len(movements)
        result.sheets_processed = len({m.sheet for m in movements})

        writes: list[WriteRecord] = []
        for movement in movements:
            try:
                if movement.is_debit:
                    candidate = self.matcher.match_debit(movement, ledger)
                elif movement.is_credit:
                    candidate = self.matcher.match_credit(movement, ledger)
                else:
                    continue
            except Exception as e:  # noqa: BLE001
                _logger.warning(
                    "reconcile:matcher_failed bank=%s sheet=%s row=%d error=%s",
                    bank_name,
                    movement.sheet,
                    movement.row,
                    e,
                )
                result.errors += 1
                continue

            if candidate.kind is MatchKind.NO_MATCH:
                result.no_matches += 1
                continue

            if not self.should_write(movement, candidate, ledger, force, bank_name):
                continue

            writes.append(
                WriteRecord(
                    partition_id=store_id,
                    sheet=movement.sheet,
                    row=movement.row,
                    matched_file_id=candidate.matched_file_id,
                    detail=candidate.description,
                    expected_version=compute_row_version(movement),
                )
            )
            if movement.is_debit:
                result.debits_filled += 1
            else:
                result.credits_filled += 1

        result.filled = result.debits_filled + result.credits_filled

        write_result = await self.movement_store.write_back(store_id, writes)
        if write_result.ok:
            result.applied = write_result.value
            if result.applied < len(writes):
                _logger.warning(
                    "reconcile:stale_rows_skipped bank=%s submitted=%d applied=%d",
                    bank_name,
                    len(writes),
                    result.applied,
                )
        else:
            _logger.warning(
                "reconcile:write_failed bank=%s error=%s", bank_name, write_result.error
            )
            result.errors += 1

        result.duration = time.monotonic() - started
        return result

    def should_write(
        self,
        movement: Movement,
        candidate: MatchCandidate,
        ledger: LedgerData,
        force: bool,
        bank_name: str = "",
    ) -> bool:
        """Decide whether ``candidate`` may be written over the movement's current state."""
        if not candidate.kind.carries_document:
            # Fee and card kinds have no document to compare against.
            unchanged = not movement.matched_file_id and movement.detail == candidate.description
            if force:
                return not unchanged
            return not movement.matched_file_id and not movement.detail

        if (
            movement.matched_file_id
            and candidate.matched_file_id == movement.matched_file_id
            and candidate.description == movement.detail
        ):
            return False

        if force or not movement.matched_file_id:
            return True

        existing_document = ledger.find_document(movement.matched_file_id)
        if existing_document is None:
            _logger.warning(
                "reconcile:orphaned_match Existing matched document no longer exists in ledger, "
                "keeping orphaned match matchedFileId=%s bank=%s date=%s",
                movement.matched_file_id,
                bank_name,
                movement.date,
            )
            return False

        candidate_document = ledger.find_document(candidate.matched_file_id)
        if candidate_document is None:
            return False

        existing = quality_for_document(existing_document, movement)
        proposed = quality_for_document(candidate_document, movement, candidate.confidence)
        return is_better_match(existing, proposed)


def aggregate_totals(results: list[PartitionResult]) -> RunTotals:
    """Sum partition statistics into run totals."""
    return RunTotals(
        total_processed=sum(r.processed for r in results),
        total_filled=sum(r.filled for r in results),
        total_debits_filled=sum(r.debits_filled for r in results),
        total_credits_filled=sum(r.credits_filled for r in results),
        total_no_matches=sum(r.no_matches for r in results),
        total_errors=sum(r.errors for r in results),
        total_applied=sum(r.applied for r in results),
    )
