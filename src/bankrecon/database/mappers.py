"""Mapper functions to convert between domain models and SQLAlchemy models."""

from bankrecon.domain import entities as domain
from bankrecon.database.models import (
    LedgerLayout as ORMLedgerLayout,
    Partition as ORMPartition,
    MovementRow as ORMMovementRow,
)


def movement_to_domain(orm_movement: ORMMovementRow) -> domain.Movement:
    """Convert SQLAlchemy MovementRow model to domain Movement entity."""
    return domain.Movement(
        partition_id=orm_movement.store_id,
        sheet=orm_movement.sheet,
        row=orm_movement.row_number,
        date=orm_movement.date or "",
        description=orm_movement.description or "",
        debit=orm_movement.debit,
        credit=orm_movement.credit,
        balance=orm_movement.balance,
        matched_file_id=orm_movement.matched_file_id or "",
        detail=orm_movement.detail or "",
    )


def movement_to_orm(movement: domain.Movement) -> ORMMovementRow:
    """Convert domain Movement entity to a new SQLAlchemy MovementRow model."""
    return ORMMovementRow(
        store_id=movement.partition_id,
        sheet=movement.sheet,
        row_number=movement.row,
        date=movement.date,
        description=movement.description,
        debit=movement.debit,
        credit=movement.credit,
        balance=movement.balance,
        matched_file_id=movement.matched_file_id,
        detail=movement.detail,
    )


def partition_map_to_domain(
    orm_layout: ORMLedgerLayout, orm_partitions: list[ORMPartition]
) -> domain.PartitionMap:
    """Convert the ledger layout and partition rows to a domain PartitionMap."""
    return domain.PartitionMap(
        issued_ledger_id=orm_layout.issued_ledger_id,
        received_ledger_id=orm_layout.received_ledger_id,
        partitions={p.bank_name: p.store_id for p in orm_partitions},
    )
